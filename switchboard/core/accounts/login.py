from __future__ import annotations

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from switchboard.core.clients.base import AccountServiceClient, ClientFactory
from switchboard.core.error_reporter import note_advisory_failure
from switchboard.core.errors import SessionNotFoundError
from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.identity.models import AccountProfile, Identity, PushSubscription, ServerCredential, TokenCredential
from switchboard.core.identity.state import AccountState


class PreferenceCache:
    """Server-side reading preferences per fully-qualified handle (not persisted)."""

    def __init__(self) -> None:
        self._prefs: Dict[str, Dict[str, Any]] = {}

    def set(self, acct: str, prefs: Dict[str, Any]) -> None:
        self._prefs[acct] = dict(prefs or {})

    def get(self, acct: str) -> Dict[str, Any]:
        return dict(self._prefs.get(acct) or {})

    def forget(self, acct: str) -> None:
        self._prefs.pop(acct, None)

    def expand_spoilers_by_default(self, acct: str) -> bool:
        """True when the user always expands posts with content warnings."""
        return bool(self.get(acct).get("reading:expand:spoilers", False))

    def expand_media_by_default(self, acct: str) -> bool:
        """True when media display is set to "show_all"."""
        return self.get(acct).get("reading:expand:media") == "show_all"

    def hide_media_by_default(self, acct: str) -> bool:
        """True when media display is set to "hide_all"."""
        return self.get(acct).get("reading:expand:media") == "hide_all"


class LoginCoordinator:
    """
    Logs a token credential in (or sets up public viewing) and merges the
    result into the registry.

    Only the profile fetch is mandatory; its failure propagates to the caller.
    Node info, instance metadata, preferences and push subscription are
    optional and fall back to their cached value or an empty default.
    """

    def __init__(
        self,
        *,
        state: AccountState,
        client_factory: ClientFactory,
        preferences: Optional[PreferenceCache] = None,
        bus: Optional[EventBus] = None,
        logger=None,
        error_reporter=None,
        pwa_enabled: bool = True,
        account_cache: Optional[Callable[[AccountProfile, str], None]] = None,
    ):
        self.state = state
        self.client_factory = client_factory
        self.preferences = preferences or PreferenceCache()
        self.bus = bus
        self.logger = logger
        self.error_reporter = error_reporter
        self.pwa_enabled = bool(pwa_enabled)
        self.account_cache = account_cache
        self._background: Set[asyncio.Future] = set()

    def client_for(self, server: str, token: Optional[str]) -> AccountServiceClient:
        return self.client_factory(server, token)

    async def login_to(self, credential: ServerCredential) -> Optional[Identity]:
        """
        Returns the stored identity, or None for public viewing and for a login
        whose identity was signed out while its profile was being fetched.
        """
        trace_id = uuid.uuid4().hex
        server = credential.server
        client = self.client_for(server, credential.token)
        instances = self.state.instances

        self._spawn(instances.refresh_node_info(server))
        instance = await instances.refresh_instance(client, server) or instances.get(server)

        if not credential.token:
            self.state.set_public(server, instance)
            self._emit("accounts.public", {"server": server}, trace_id)
            return None

        stable_id = credential.stable_id
        known = self.state.registry.find(stable_id)
        if known is not None:
            # switch immediately; the profile refresh below catches up
            self.state.pointer.set(known.pointer_key)

        account, push_subscription = await asyncio.gather(
            self.fetch_account_info(client, server),
            self._fetch_push_subscription(client),
        )

        # the registry may have changed while we were suspended
        if known is not None and self.state.registry.find(stable_id) is None:
            if self.logger:
                self.logger.info(f"Login for {account.acct} dropped: identity was signed out meanwhile")
            self._emit("accounts.login.superseded", {"acct": account.acct}, trace_id)
            return None

        stored = self.state.registry.upsert(
            Identity(
                server=server,
                credential=TokenCredential(token=credential.token),
                account=account,
                push_subscription=push_subscription,
            )
        )
        self.state.pointer.set(account.acct)
        self._emit("accounts.login", {"acct": account.acct, "server": server}, trace_id)
        return stored

    async def fetch_account_info(self, client: AccountServiceClient, server: str) -> AccountProfile:
        raw, prefs = await asyncio.gather(client.verify_credentials(), self._fetch_preferences(client))
        account = raw if isinstance(raw, AccountProfile) else AccountProfile.model_validate(raw)

        if not account.is_fully_qualified:
            web_domain = self.state.instances.domain_for_server(server)
            account = account.model_copy(update={"acct": f"{account.acct}@{web_domain}"})

        self.preferences.set(account.acct, prefs)
        if self.account_cache is not None:
            self.account_cache(account, server)
        return account

    async def refresh_account_info(self) -> AccountProfile:
        user = self.state.current_user
        if user is None or user.token is None:
            raise SessionNotFoundError("No token account is selected.")
        stable_id = user.stable_id
        account = await self.fetch_account_info(self.client_for(user.server, user.token), user.server)
        current = self.state.registry.find(stable_id)
        if current is not None:
            self.state.registry.upsert(current.model_copy(update={"account": account}))
        return account

    async def switch_user(self, identity: Identity) -> Optional[Identity]:
        if identity.is_oauth:
            self.state.pointer.set(identity.pointer_key)
            result: Optional[Identity] = self.state.registry.find(identity.stable_id)
        else:
            result = await self.login_to(ServerCredential(server=identity.server, token=identity.token))
        self._emit("accounts.switched", {"to": identity.pointer_key})
        return result

    async def drain(self) -> None:
        """Wait for fire-and-forget work (node-info fetches) to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ---- internals ----
    async def _fetch_preferences(self, client: AccountServiceClient) -> Dict[str, Any]:
        try:
            return dict(await client.fetch_preferences() or {})
        except Exception as e:  # noqa: BLE001
            note_advisory_failure(e, subsystem="preferences", logger=self.logger, error_reporter=self.error_reporter)
            return {}

    async def _fetch_push_subscription(self, client: AccountServiceClient) -> Optional[PushSubscription]:
        if not self.pwa_enabled:
            return None
        try:
            raw = await client.fetch_push_subscription()
            if not raw:
                return None
            return raw if isinstance(raw, PushSubscription) else PushSubscription.model_validate(raw)
        except Exception:  # noqa: BLE001
            # servers answer 404 instead of an empty body when there is no subscription
            return None

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _emit(self, event_type: str, payload: Dict[str, Any], trace_id: Optional[str] = None) -> None:
        if self.bus is not None:
            self.bus.emit(event_type, SourceSubsystem.login, payload, trace_id=trace_id)
