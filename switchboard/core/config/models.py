from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


CURRENT_CONFIG_VERSION = 1


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    backend: Literal["json", "memory"] = "json"
    path: str = "data/switchboard_store.json"
    backup_keep: int = Field(default=10, ge=0, le=200)


class StorageKeysConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    current_user_handle: str = "switchboard-current-user-handle"
    nodes: str = "switchboard-nodes"
    servers: str = "switchboard-servers"
    notification: str = "switchboard-notification"
    notification_policy: str = "switchboard-notification-policy"


class AccountsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    pwa_enabled: bool = True
    default_post_chars_limit: int = Field(default=500, ge=1)
    node_info_path: str = "/nodeinfo/2.0"
    node_info_timeout_seconds: float = Field(default=5.0, gt=0, le=120)
    anonymous_bucket_id: str = "[anonymous]"
    # server shown to signed-out visitors; empty means none
    default_server: str = ""


class OAuthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    scope: str = "atproto transition:generic"
    handle_resolver: str = "https://api.bsky.app"
    plc_directory_url: str = "https://plc.directory"
    origin: str = "http://127.0.0.1"
    language: str = "en"


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    level: str = "INFO"
    events_jsonl: bool = False
    errors_jsonl: bool = True


class SwitchboardConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=CURRENT_CONFIG_VERSION, ge=1)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    storage_keys: StorageKeysConfig = Field(default_factory=StorageKeysConfig)
    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    oauth: OAuthConfig = Field(default_factory=OAuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
