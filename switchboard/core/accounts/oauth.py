from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Union
from urllib.parse import quote, urlsplit

from switchboard.core.clients.base import AgentFactory, OAuthAgent, OAuthClient, OAuthClientLoader, OAuthClientOptions
from switchboard.core.config.models import OAuthConfig
from switchboard.core.errors import OAuthClientError, SessionNotFoundError
from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.identity.models import AccountProfile, Identity, OAuthCredential
from switchboard.core.identity.state import AccountState


LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1", "[::1]"}


def is_loopback_host(host: Optional[str]) -> bool:
    return str(host or "").lower() in LOOPBACK_HOSTS


def build_client_id(origin: str, scope: str) -> str:
    """
    OAuth client id for this origin.

    Loopback origins get the development form (`http://localhost?...`) since a
    metadata document cannot be served to the authorization server from there.
    """
    parts = urlsplit(origin)
    if is_loopback_host(parts.hostname):
        redirect = "http://127.0.0.1" + (f":{parts.port}" if parts.port else "") + "/"
        scopes = "+".join(quote(s, safe="") for s in scope.split())
        return f"http://localhost?redirect_uri={quote(redirect, safe='')}&scope={scopes}"
    return f"{parts.scheme}://{parts.netloc}/client-metadata.json"


def session_subject(session: Any) -> str:
    if isinstance(session, dict):
        sub = session.get("sub") or session.get("did")
    else:
        sub = getattr(session, "sub", None) or getattr(session, "did", None)
    if not sub:
        raise OAuthClientError("Session has no subject.")
    return str(sub)


def _event_subject(event: Any) -> Optional[str]:
    if isinstance(event, str):
        return event
    if isinstance(event, dict):
        return event.get("sub") or (event.get("detail") or {}).get("sub")
    detail = getattr(event, "detail", None)
    if isinstance(detail, dict):
        return detail.get("sub")
    return getattr(detail, "sub", None) or getattr(event, "sub", None)


class OAuthSessionAdapter:
    """
    Bridges the decentralized-identity OAuth client into the registry.

    OAuth identities are keyed by subject id; the session object stays opaque
    and is only handed back to the client library (via `get_agent`).
    """

    def __init__(
        self,
        *,
        state: AccountState,
        loader: OAuthClientLoader,
        agent_factory: AgentFactory,
        config: Optional[OAuthConfig] = None,
        bus: Optional[EventBus] = None,
        logger=None,
        error_reporter=None,
    ):
        self.state = state
        self.loader = loader
        self.agent_factory = agent_factory
        self.config = config or OAuthConfig()
        self.bus = bus
        self.logger = logger
        self.error_reporter = error_reporter
        self.client: Optional[OAuthClient] = None
        self.is_loading = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._listening = False

    def client_options(self) -> OAuthClientOptions:
        return OAuthClientOptions(
            client_id=build_client_id(self.config.origin, self.config.scope),
            handle_resolver=self.config.handle_resolver,
            plc_directory_url=self.config.plc_directory_url,
        )

    async def load_client(self) -> OAuthClient:
        if self.client is None:
            try:
                self.client = await self.loader(self.client_options())
            except Exception as e:  # noqa: BLE001
                if self.error_reporter is not None:
                    self.error_reporter.report_exception(e, trace_id="oauth-load", subsystem="oauth")
                raise OAuthClientError(error=str(e)) from e
        return self.client

    async def init(self) -> Optional[Identity]:
        """Load the client, resume any prior session and start listening for revocations."""
        self.is_loading = True
        try:
            client = await self.load_client()
            self._loop = asyncio.get_running_loop()
            if not self._listening:
                client.add_event_listener("deleted", self._handle_deleted_event)
                self._listening = True
            result = await client.init()
            return await self.complete_init(result)
        finally:
            self.is_loading = False

    async def complete_init(self, result: Any) -> Optional[Identity]:
        session = getattr(result, "session", None) if result is not None else None
        if session is None and isinstance(result, dict):
            session = result.get("session")
        if session is None:
            return None
        subject = session_subject(session)
        profile = await self.get_profile(session)
        stored = self.state.registry.upsert(
            Identity(credential=OAuthCredential(subject=subject, session=session), account=profile)
        )
        self.state.pointer.set(subject)
        self._emit("accounts.oauth.resumed", {"subject": subject})
        return stored

    async def sign_in(self, handle: str) -> bool:
        """Start the interactive flow. Returns False when the client is not loaded yet."""
        if self.client is None:
            if self.logger:
                self.logger.warning("OAuth sign-in requested before the client was loaded")
            return False
        await self.client.sign_in(handle, scope=self.config.scope, ui_locales=self.config.language)
        return True

    def get_session(self, subject: str) -> Any:
        ident = self.state.registry.find_by_subject(subject)
        if ident is None or ident.session is None:
            raise SessionNotFoundError(subject=subject)
        return ident.session

    def get_agent(self, session_or_subject: Union[str, Any]) -> OAuthAgent:
        session = self.get_session(session_or_subject) if isinstance(session_or_subject, str) else session_or_subject
        return self.agent_factory(session)

    async def get_profile(self, session: Any) -> AccountProfile:
        subject = session_subject(session)
        resp = await self.get_agent(session).get_profile(actor=subject)
        data = getattr(resp, "data", resp)
        if not isinstance(data, dict):
            data = dict(getattr(data, "__dict__", {}) or {})
        did = str(data.get("did") or subject)
        handle = str(data.get("handle") or did)
        fields: Dict[str, Any] = dict(data)
        fields.update(
            id=did,
            acct=handle,
            username=handle,
            display_name=str(data.get("displayName") or data.get("display_name") or ""),
            did=did,
        )
        return AccountProfile.model_validate(fields)

    def on_session_deleted(self, subject: str) -> Optional[Identity]:
        """Drop a session revoked elsewhere; clears the pointer when it was the active one."""
        ident = self.state.registry.find_by_subject(subject)
        pointer = self.state.pointer.get()
        was_active = pointer == subject or (ident is not None and ident.matches_pointer(pointer))
        removed = self.state.registry.remove(ident.stable_id) if ident is not None else None
        if was_active:
            self.state.pointer.clear()
        self._emit("accounts.oauth.revoked", {"subject": subject, "removed": removed is not None})
        return removed

    def _handle_deleted_event(self, event: Any) -> None:
        subject = _event_subject(event)
        if not subject:
            if self.logger:
                self.logger.warning("OAuth deleted event without a subject ignored")
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            self.on_session_deleted(subject)
            return
        # the client library may call us from its own thread
        loop.call_soon_threadsafe(self.on_session_deleted, subject)

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self.bus is not None:
            self.bus.emit(event_type, SourceSubsystem.oauth, payload)
