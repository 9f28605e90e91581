"""
Account lifecycle: token login and switching, sign-out cleanup, the OAuth
session bridge, and `build_accounts` which wires them together.
"""

from switchboard.core.accounts.container import Accounts, build_accounts, build_store
from switchboard.core.accounts.login import LoginCoordinator, PreferenceCache
from switchboard.core.accounts.oauth import OAuthSessionAdapter, build_client_id, is_loopback_host
from switchboard.core.accounts.signout import SignOutCoordinator

__all__ = [
    "Accounts",
    "build_accounts",
    "build_store",
    "LoginCoordinator",
    "PreferenceCache",
    "OAuthSessionAdapter",
    "build_client_id",
    "is_loopback_host",
    "SignOutCoordinator",
]
