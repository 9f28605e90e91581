from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


class _L:
    def __init__(self):
        self.messages: List[str] = []

    def debug(self, *_a, **_k): ...

    def info(self, msg, *_a, **_k):  # noqa: ANN001
        self.messages.append(str(msg))

    def warning(self, msg, *_a, **_k):  # noqa: ANN001
        self.messages.append(str(msg))

    def error(self, msg, *_a, **_k):  # noqa: ANN001
        self.messages.append(str(msg))


class FakeAccountClient:
    """
    Scripted account service for one (server, token).

    `gate` (an asyncio.Event) holds verify_credentials until the test sets it.
    """

    def __init__(
        self,
        *,
        profile: Optional[Dict[str, Any]] = None,
        instance: Optional[Dict[str, Any]] = None,
        preferences: Optional[Dict[str, Any]] = None,
        push: Optional[Dict[str, Any]] = None,
    ):
        self.profile = profile
        self.instance = instance
        self.preferences = preferences if preferences is not None else {}
        self.push = push
        self.fail_profile = False
        self.fail_preferences = False
        self.fail_push = False
        self.fail_instance = False
        self.fail_remove_push = False
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[str] = []

    async def verify_credentials(self) -> Dict[str, Any]:
        self.calls.append("verify_credentials")
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_profile or self.profile is None:
            raise RuntimeError("401 unauthorized")
        return dict(self.profile)

    async def fetch_preferences(self) -> Dict[str, Any]:
        self.calls.append("fetch_preferences")
        if self.fail_preferences:
            raise RuntimeError("preferences unavailable")
        return dict(self.preferences)

    async def fetch_push_subscription(self) -> Optional[Dict[str, Any]]:
        self.calls.append("fetch_push_subscription")
        if self.fail_push or self.push is None:
            raise RuntimeError("404 record not found")
        return dict(self.push)

    async def remove_push_subscription(self) -> None:
        self.calls.append("remove_push_subscription")
        if self.fail_remove_push:
            raise RuntimeError("push removal failed")

    async def fetch_instance(self) -> Dict[str, Any]:
        self.calls.append("fetch_instance")
        if self.fail_instance or self.instance is None:
            raise RuntimeError("instance unavailable")
        return dict(self.instance)


class FakeClientFactory:
    """Returns the client registered for a server (tokenless calls get a public client)."""

    def __init__(self):
        self.clients: Dict[str, FakeAccountClient] = {}
        self.requested: List[tuple] = []

    def add(self, server: str, client: FakeAccountClient) -> FakeAccountClient:
        self.clients[server] = client
        return client

    def __call__(self, server: str, token: Optional[str]) -> FakeAccountClient:
        self.requested.append((server, token))
        return self.clients.setdefault(server, FakeAccountClient())


@dataclass
class FakeResponse:
    payload: Any = None
    status_code: int = 200

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self) -> Any:
        return self.payload


@dataclass
class FakeHttp:
    """Stands in for requests.get."""

    responses: Dict[str, FakeResponse] = field(default_factory=dict)
    urls: List[str] = field(default_factory=list)

    def __call__(self, url: str, timeout: float = 0.0) -> FakeResponse:
        self.urls.append(url)
        resp = self.responses.get(url)
        if resp is None:
            raise ConnectionError(f"no route to {url}")
        return resp


@dataclass
class FakeSession:
    sub: str


@dataclass
class FakeInitResult:
    session: Optional[FakeSession] = None


class FakeOAuthClient:
    def __init__(self, resumed: Optional[FakeSession] = None):
        self.resumed = resumed
        self.listeners: Dict[str, List[Callable[[Any], None]]] = {}
        self.sign_ins: List[tuple] = []

    async def init(self) -> Optional[FakeInitResult]:
        return FakeInitResult(session=self.resumed) if self.resumed is not None else None

    async def sign_in(self, handle: str, **options: Any) -> None:
        self.sign_ins.append((handle, options))

    def add_event_listener(self, name: str, callback: Callable[[Any], None]) -> None:
        self.listeners.setdefault(name, []).append(callback)

    def fire(self, name: str, event: Any) -> None:
        for cb in self.listeners.get(name, []):
            cb(event)


class FakeOAuthLoader:
    def __init__(self, client: FakeOAuthClient, *, fail: bool = False):
        self.client = client
        self.fail = fail
        self.options: List[Any] = []

    async def __call__(self, options: Any) -> FakeOAuthClient:
        self.options.append(options)
        if self.fail:
            raise RuntimeError("client metadata unreachable")
        return self.client


@dataclass
class FakeProfileResponse:
    data: Dict[str, Any]


class FakeAgent:
    def __init__(self, session: FakeSession, profiles: Dict[str, Dict[str, Any]]):
        self.session = session
        self.profiles = profiles

    async def get_profile(self, *, actor: str) -> FakeProfileResponse:
        if actor not in self.profiles:
            raise RuntimeError("profile not found")
        return FakeProfileResponse(data=dict(self.profiles[actor]))


class FakeAgentFactory:
    def __init__(self, profiles: Optional[Dict[str, Dict[str, Any]]] = None):
        self.profiles = profiles or {}
        self.sessions: List[Any] = []

    def __call__(self, session: Any) -> FakeAgent:
        self.sessions.append(session)
        return FakeAgent(session, self.profiles)


@dataclass
class FakePushRegistration:
    registration_error: bool = False
    fail: bool = False
    unregistered: int = 0

    async def unregister(self) -> None:
        if self.fail:
            raise RuntimeError("unregister failed")
        self.unregistered += 1
