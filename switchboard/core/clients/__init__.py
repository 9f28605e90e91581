from switchboard.core.clients.base import (
    AccountServiceClient,
    AgentFactory,
    ClientFactory,
    OAuthAgent,
    OAuthClient,
    OAuthClientLoader,
    OAuthClientOptions,
    PushRegistration,
)

__all__ = [
    "AccountServiceClient",
    "AgentFactory",
    "ClientFactory",
    "OAuthAgent",
    "OAuthClient",
    "OAuthClientLoader",
    "OAuthClientOptions",
    "PushRegistration",
]
