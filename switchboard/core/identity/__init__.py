"""
Account identities: models, the process-wide registry, the persisted active
pointer, and the derived current-account state.
"""

from switchboard.core.identity.models import (
    AccountProfile,
    Identity,
    OAuthCredential,
    PushSubscription,
    ServerCredential,
    TokenCredential,
)
from switchboard.core.identity.pointer import ActivePointer
from switchboard.core.identity.registry import IdentityRegistry
from switchboard.core.identity.state import AccountState

__all__ = [
    "AccountProfile",
    "Identity",
    "OAuthCredential",
    "PushSubscription",
    "ServerCredential",
    "TokenCredential",
    "ActivePointer",
    "IdentityRegistry",
    "AccountState",
]
