from __future__ import annotations

import hashlib
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def token_stable_id(server: str, token: str) -> str:
    """Stable id for a token identity; a digest so the raw token never appears in ids or events."""
    return hashlib.sha256(f"{server}\n{token}".encode("utf-8")).hexdigest()


class AccountProfile(BaseModel):
    """
    Profile as returned by the account service (or the OAuth agent).

    Unknown backend fields are kept; `acct` is normalized to `user@webDomain`
    before a token identity is stored.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    acct: str
    username: str = ""
    display_name: str = ""
    did: Optional[str] = None

    @property
    def is_fully_qualified(self) -> bool:
        return "@" in self.acct


class PushSubscription(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    endpoint: str = ""
    alerts: Dict[str, bool] = Field(default_factory=dict)
    policy: Optional[str] = None
    server_key: Optional[str] = None


class TokenCredential(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["token"] = "token"
    token: str = Field(min_length=1, repr=False)


class OAuthCredential(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    kind: Literal["oauth"] = "oauth"
    subject: str = Field(min_length=1)
    # opaque handle owned by the OAuth client library; never serialized
    session: Any = Field(default=None, exclude=True, repr=False)


Credential = Annotated[Union[TokenCredential, OAuthCredential], Field(discriminator="kind")]


class ServerCredential(BaseModel):
    """Login input for token identities. No token means public (read-only) viewing."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    server: str = Field(min_length=1)
    token: Optional[str] = Field(default=None, repr=False)

    @property
    def stable_id(self) -> Optional[str]:
        return token_stable_id(self.server, self.token) if self.token else None


class Identity(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    server: str = ""
    credential: Credential
    account: AccountProfile
    push_subscription: Optional[PushSubscription] = None

    @property
    def is_oauth(self) -> bool:
        return isinstance(self.credential, OAuthCredential)

    @property
    def stable_id(self) -> str:
        if isinstance(self.credential, OAuthCredential):
            return self.credential.subject
        return token_stable_id(self.server, self.credential.token)

    @property
    def subject(self) -> Optional[str]:
        if isinstance(self.credential, OAuthCredential):
            return self.credential.subject
        return self.account.did

    @property
    def token(self) -> Optional[str]:
        return self.credential.token if isinstance(self.credential, TokenCredential) else None

    @property
    def session(self) -> Any:
        return self.credential.session if isinstance(self.credential, OAuthCredential) else None

    @property
    def pointer_key(self) -> str:
        """Value the active pointer holds when this identity is selected."""
        if isinstance(self.credential, OAuthCredential):
            return self.credential.subject
        return self.account.acct

    @property
    def storage_id(self) -> str:
        """Bucket id in scoped storage: `user@webDomain`, or the subject for OAuth identities."""
        if isinstance(self.credential, OAuthCredential):
            return self.credential.subject
        return self.account.acct

    def matches_pointer(self, pointer: Optional[str]) -> bool:
        if not pointer:
            return False
        return pointer == self.account.acct or (self.subject is not None and pointer == self.subject)

    def summary(self) -> Dict[str, Any]:
        return {
            "stable_id": self.stable_id if self.is_oauth else self.stable_id[:12],
            "server": self.server,
            "acct": self.account.acct,
            "kind": self.credential.kind,
            "push": self.push_subscription is not None,
        }
