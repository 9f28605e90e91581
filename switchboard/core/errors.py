from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from switchboard.core.events.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class SwitchboardError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


class ConfigError(SwitchboardError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class StorageError(SwitchboardError):
    def __init__(self, user_message: str = "Local storage error.", **ctx: Any):
        super().__init__("storage_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class SessionNotFoundError(SwitchboardError):
    """Raised when a caller asks for the session of an identity the registry does not hold."""

    def __init__(self, user_message: str = "Session not found.", **ctx: Any):
        super().__init__("session_not_found", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class OAuthClientError(SwitchboardError):
    def __init__(self, user_message: str = "Sign-in service is unavailable.", **ctx: Any):
        super().__init__("oauth_client_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class AdvisoryFetchError(SwitchboardError):
    def __init__(self, user_message: str = "Optional data could not be fetched.", **ctx: Any):
        super().__init__("advisory_fetch_failed", user_message, severity=Severity.INFO, recoverable=True, context=ctx)
