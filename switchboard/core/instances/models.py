from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StatusesConfiguration(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_characters: Optional[int] = None


class InstanceConfiguration(BaseModel):
    model_config = ConfigDict(extra="allow")
    statuses: Optional[StatusesConfiguration] = None


class InstanceRecord(BaseModel):
    """
    Advisory per-server metadata. `account_domain` is the public hostname some
    backends (e.g. GoToSocial) expose separately from the API host.
    """

    model_config = ConfigDict(extra="allow")

    uri: str
    version: str = ""
    title: str = ""
    account_domain: Optional[str] = None
    configuration: Optional[InstanceConfiguration] = None
    capabilities: Dict[str, bool] = Field(default_factory=dict)

    @property
    def max_characters(self) -> Optional[int]:
        if self.configuration is None or self.configuration.statuses is None:
            return None
        return self.configuration.statuses.max_characters
