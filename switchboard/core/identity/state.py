from __future__ import annotations

from typing import Any, Dict, Optional

from switchboard.core.events import EventBus, SourceSubsystem
from switchboard.core.identity.models import Identity
from switchboard.core.identity.pointer import ActivePointer
from switchboard.core.identity.registry import IdentityRegistry
from switchboard.core.instances import InstanceCache, InstanceRecord


class AccountState:
    """
    Current-account view over the registry, the active pointer and the
    instance cache. Every property is re-derived on access; nothing here is
    cached across suspension points.
    """

    def __init__(
        self,
        *,
        registry: IdentityRegistry,
        pointer: ActivePointer,
        instances: InstanceCache,
        bus: Optional[EventBus] = None,
        default_post_chars_limit: int = 500,
    ):
        self.registry = registry
        self.pointer = pointer
        self.instances = instances
        self.bus = bus
        self.default_post_chars_limit = int(default_post_chars_limit)
        # anonymous (public) viewing target
        self.public_server: str = ""
        self.public_instance: Optional[InstanceRecord] = None

    @property
    def current_user(self) -> Optional[Identity]:
        return self.registry.resolve_current(self.pointer.get())

    @property
    def current_server(self) -> str:
        user = self.current_user
        return (user.server if user is not None else "") or self.public_server

    @property
    def current_instance(self) -> Optional[InstanceRecord]:
        user = self.current_user
        if user is not None:
            return self.instances.get(user.server)
        return self.public_instance

    @property
    def current_web_domain(self) -> str:
        instance = self.current_instance
        return self.instances.domain_for(instance) if instance is not None else self.current_server

    @property
    def current_node_info(self) -> Optional[Dict[str, Any]]:
        return self.instances.node_info(self.current_server)

    @property
    def is_gotosocial(self) -> bool:
        info = self.current_node_info or {}
        return (info.get("software") or {}).get("name") == "gotosocial"

    @property
    def is_glitch_edition(self) -> bool:
        instance = self.current_instance
        return instance is not None and "+glitch" in (instance.version or "")

    @property
    def character_limit(self) -> int:
        instance = self.current_instance
        limit = instance.max_characters if instance is not None else None
        return int(limit) if limit else self.default_post_chars_limit

    def is_self_account(self, account_id: Optional[str]) -> bool:
        user = self.current_user
        return user is not None and account_id is not None and user.account.id == account_id

    def set_public(self, server: str, instance: Optional[InstanceRecord]) -> None:
        self.public_server = server
        self.public_instance = instance

    def require_login(self) -> bool:
        """False (and a sign-in request event) when no identity is current."""
        if self.current_user is not None:
            return True
        if self.bus is not None:
            self.bus.emit("accounts.signin_required", SourceSubsystem.login, {"public_server": self.public_server})
        return False
