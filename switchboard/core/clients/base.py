from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional


class AccountServiceClient:
    """
    Account REST client bound to one server (and, when logged in, one token).

    Implementations live in the host application. Semantics relied on here:
    - verify_credentials()        -> profile mapping; raises on failure (mandatory)
    - fetch_preferences()         -> preference mapping; may raise (advisory)
    - fetch_push_subscription()   -> subscription mapping; raises / None when absent (404)
    - remove_push_subscription()  -> revoke server-side push; may raise (advisory)
    - fetch_instance()            -> instance metadata mapping; may raise (advisory)
    """

    async def verify_credentials(self) -> Dict[str, Any]:
        ...

    async def fetch_preferences(self) -> Dict[str, Any]:
        ...

    async def fetch_push_subscription(self) -> Optional[Dict[str, Any]]:
        ...

    async def remove_push_subscription(self) -> None:
        ...

    async def fetch_instance(self) -> Dict[str, Any]:
        ...


ClientFactory = Callable[[str, Optional[str]], AccountServiceClient]


@dataclass(frozen=True)
class OAuthClientOptions:
    client_id: str
    handle_resolver: str
    plc_directory_url: str


class OAuthClient:
    """
    Decentralized-identity OAuth client (browser-style flow).

    - init()                      -> resumed result with `.session` (having `.sub`/`.did`), or None
    - sign_in(handle, **options)  -> starts the interactive authorization flow
    - add_event_listener("deleted", cb) -> cb(subject) when a session is revoked elsewhere
    """

    async def init(self) -> Any:
        ...

    async def sign_in(self, handle: str, **options: Any) -> None:
        ...

    def add_event_listener(self, name: str, callback: Callable[[Any], None]) -> None:
        ...


OAuthClientLoader = Callable[[OAuthClientOptions], Awaitable[OAuthClient]]


class OAuthAgent:
    """API agent wrapping an OAuth session."""

    async def get_profile(self, *, actor: str) -> Any:
        ...


AgentFactory = Callable[[Any], OAuthAgent]


class PushRegistration:
    """Platform push-delivery registration (service worker push manager or equivalent)."""

    registration_error: bool = False

    async def unregister(self) -> None:
        ...
