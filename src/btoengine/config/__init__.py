from .settings import (
    LoggingConfig,
    PolicyConfig,
    Settings,
    StorageConfig,
    StorageFiles,
    create_settings,
)
from .validated_settings import SettingsModel, load_validated_settings

__all__ = [
    "LoggingConfig",
    "PolicyConfig",
    "Settings",
    "StorageConfig",
    "StorageFiles",
    "create_settings",
    "SettingsModel",
    "load_validated_settings",
]
