from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from switchboard.core.accounts.login import LoginCoordinator
from switchboard.core.clients.base import PushRegistration
from switchboard.core.error_reporter import note_advisory_failure
from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.identity.models import Identity, ServerCredential
from switchboard.core.identity.state import AccountState
from switchboard.core.storage import KeyValueStore
from switchboard.core.storage.scoped import ScopedStorageManager


class SignOutCoordinator:
    """
    Removes the current identity and everything stored on its behalf, then
    selects the next identity (or drops back to public viewing).

    The identity is captured once up front and every later step works from
    that capture, so a pointer change mid-way cannot redirect the cleanup.
    """

    def __init__(
        self,
        *,
        state: AccountState,
        storage: ScopedStorageManager,
        login: LoginCoordinator,
        store: KeyValueStore,
        notification_key: str,
        notification_policy_key: str,
        push_registration: Optional[PushRegistration] = None,
        pwa_enabled: bool = True,
        bus: Optional[EventBus] = None,
        logger=None,
        error_reporter=None,
    ):
        self.state = state
        self.storage = storage
        self.login = login
        self.push_registration = push_registration
        self.pwa_enabled = bool(pwa_enabled)
        self.bus = bus
        self.logger = logger
        self.error_reporter = error_reporter
        self.store = store
        # acct -> per-account notification settings; written by the push layer
        self.notification_keys = (notification_key, notification_policy_key)

    async def sign_out(self) -> Optional[Identity]:
        """Returns the removed identity, or None when nobody was signed in."""
        user = self.state.current_user
        if user is None:
            return None
        trace_id = uuid.uuid4().hex
        stable_id = user.stable_id

        self.storage.clear_all(user)

        if user.server and not self.state.registry.shares_server(user.server, excluding=stable_id):
            self.state.instances.delete(user.server)

        await self.remove_push_notifications(user)
        await self.remove_push_notification_data(user)

        self.state.pointer.clear()
        removed = self.state.registry.remove(stable_id)
        self.login.preferences.forget(user.account.acct)
        self._emit("accounts.signed_out", {"identity": user.summary(), "remaining": len(self.state.registry)}, trace_id)

        nxt = self.state.registry.resolve_current(None)
        if nxt is not None:
            self.state.pointer.set(nxt.pointer_key)
            await self.login.switch_user(nxt)
        elif self.state.public_server:
            await self.login.login_to(ServerCredential(server=self.state.public_server))
        return removed

    async def remove_push_notifications(self, user: Identity) -> None:
        """Revoke the server-side push subscription; failures are logged only."""
        if user.push_subscription is None or user.token is None:
            return
        try:
            await self.login.client_for(user.server, user.token).remove_push_subscription()
        except Exception as e:  # noqa: BLE001
            note_advisory_failure(e, subsystem="push", logger=self.logger, error_reporter=self.error_reporter, context={"server": user.server})

    async def remove_push_notification_data(self, user: Identity, from_push_manager: bool = True) -> None:
        current = self.state.registry.find(user.stable_id)
        if current is not None and current.push_subscription is not None:
            current.push_subscription = None

        acct = user.account.acct
        for key in self.notification_keys:
            # always re-read; the push layer writes these maps
            entries = self.store.get(key, {})
            if isinstance(entries, dict) and acct in entries:
                del entries[acct]
                self.store.set(key, entries)

        if not (from_push_manager and self.pwa_enabled and self.push_registration is not None):
            return
        # drop the platform registration only when it is broken and nobody else needs it
        if self.push_registration.registration_error and not self.state.registry.any_push_subscription():
            try:
                await self.push_registration.unregister()
            except Exception as e:  # noqa: BLE001
                note_advisory_failure(e, subsystem="push", logger=self.logger, error_reporter=self.error_reporter)

    def _emit(self, event_type: str, payload: Dict[str, Any], trace_id: Optional[str] = None) -> None:
        if self.bus is not None:
            self.bus.emit(event_type, SourceSubsystem.signout, payload, trace_id=trace_id)
