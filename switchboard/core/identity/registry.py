from __future__ import annotations

from typing import Iterator, List, Optional

from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.identity.models import Identity, OAuthCredential


class IdentityRegistry:
    """
    Ordered, process-wide collection of logged-in identities.

    Keyed by `Identity.stable_id`; never holds two entries with the same id.
    Insertion order is the fallback order for resolution. All methods are
    synchronous so each mutation completes between two suspension points.
    """

    def __init__(self, *, bus: Optional[EventBus] = None, logger=None):
        self.bus = bus
        self.logger = logger
        self._items: List[Identity] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Identity]:
        return iter(list(self._items))

    def list(self) -> List[Identity]:
        return list(self._items)

    def find(self, stable_id: str) -> Optional[Identity]:
        for ident in self._items:
            if ident.stable_id == stable_id:
                return ident
        return None

    def find_by_subject(self, subject: str) -> Optional[Identity]:
        for ident in self._items:
            if ident.subject == subject:
                return ident
        return None

    def upsert(self, identity: Identity) -> Identity:
        """
        Update `account` and `push_subscription` of the identity with the same
        stable id in place, or append a new entry. Returns the stored identity.
        """
        existing = self.find(identity.stable_id)
        if existing is not None:
            existing.account = identity.account
            existing.push_subscription = identity.push_subscription
            # a resumed OAuth session replaces the stale handle for the same subject
            if isinstance(identity.credential, OAuthCredential) and identity.credential.session is not None:
                existing.credential = identity.credential
            self._emit("accounts.registry.updated", existing)
            return existing
        self._items.append(identity)
        self._emit("accounts.registry.added", identity)
        return identity

    def remove(self, stable_id: str) -> Optional[Identity]:
        for i, ident in enumerate(self._items):
            if ident.stable_id == stable_id:
                del self._items[i]
                self._emit("accounts.registry.removed", ident)
                return ident
        return None

    def resolve_current(self, active_pointer: Optional[str]) -> Optional[Identity]:
        if active_pointer:
            for ident in self._items:
                if ident.matches_pointer(active_pointer):
                    return ident
        return self._items[0] if self._items else None

    def shares_server(self, server: str, *, excluding: str) -> bool:
        return any(i.server == server and i.stable_id != excluding for i in self._items)

    def any_push_subscription(self) -> bool:
        return any(i.push_subscription is not None for i in self._items)

    def _emit(self, event_type: str, identity: Identity) -> None:
        if self.bus is None:
            return
        self.bus.emit(event_type, SourceSubsystem.registry, {"identity": identity.summary(), "size": len(self._items)})
