"""Configuration module: exports Settings, the YAML loader and a module-level singleton."""

from textbook_rag.config.loader import load_config, resolve_settings
from textbook_rag.config.settings import Settings

settings = Settings()

__all__ = ["Settings", "load_config", "resolve_settings", "settings"]
