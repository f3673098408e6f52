"""Configuration module for ideswitcher."""

from .config_enums import EditorRole, LogLevelEnum
from .main_config import IdeSwitcherConfig
from .main_config import get_ideswitcher_config as conf

__all__ = ["conf", "EditorRole", "IdeSwitcherConfig", "LogLevelEnum"]
