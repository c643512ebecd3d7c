"""Application services: settings persistence and localized messages."""

from .messages import MessageCatalog
from .settings import SecretVault, Settings, SettingsStore

__all__ = ["MessageCatalog", "SecretVault", "Settings", "SettingsStore"]
