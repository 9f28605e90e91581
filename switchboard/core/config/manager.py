from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import ValidationError

from switchboard.core.config.io import atomic_write_json, read_json_file, recover_from_corrupt
from switchboard.core.config.migrations import run_migrations
from switchboard.core.config.models import SwitchboardConfig
from switchboard.core.errors import ConfigError


class ConfigManager:
    """
    Loads switchboard.json: corruption recovery, versioned migrations, strict
    validation, and write-back of defaults when not read-only.
    """

    def __init__(self, *, path: str = os.path.join("config", "switchboard.json"), logger=None, read_only: bool = False):
        self.path = path
        self.logger = logger
        self.read_only = read_only
        self._cfg: Optional[SwitchboardConfig] = None

    @property
    def backups_dir(self) -> str:
        return os.path.join(os.path.dirname(self.path) or ".", "backups")

    def load(self) -> SwitchboardConfig:
        rr = read_json_file(self.path)
        raw: Dict[str, Any] = rr.data
        write_back = False
        if not rr.ok:
            if rr.error and rr.error.startswith("corrupt_json"):
                if self.logger:
                    self.logger.warning(f"Config file corrupt, recovering: {self.path}")
                raw = recover_from_corrupt(self.path, self.backups_dir)
            write_back = True

        raw, _ver, logs = run_migrations(raw)
        if logs:
            write_back = True
            if self.logger:
                self.logger.info("Config migrations: " + "; ".join(logs))

        try:
            cfg = SwitchboardConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Configuration file is invalid.", path=self.path, error=str(e)) from e

        if write_back and not self.read_only:
            atomic_write_json(self.path, cfg.model_dump(), self.backups_dir)
        self._cfg = cfg
        return cfg

    def get(self) -> SwitchboardConfig:
        if self._cfg is None:
            return self.load()
        return self._cfg

    def save(self, cfg: SwitchboardConfig) -> None:
        if self.read_only:
            raise ConfigError("Configuration is read-only.", path=self.path)
        validated = SwitchboardConfig.model_validate(cfg.model_dump())
        atomic_write_json(self.path, validated.model_dump(), self.backups_dir)
        self._cfg = validated
