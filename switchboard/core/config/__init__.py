from switchboard.core.config.manager import ConfigManager
from switchboard.core.config.models import SwitchboardConfig

__all__ = ["ConfigManager", "SwitchboardConfig"]
