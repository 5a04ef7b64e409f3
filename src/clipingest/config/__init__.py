"""Configuration module for clipingest."""

from clipingest.config.manager import Config, ConfigManager, ImportConfig, ServerConfig

__all__ = ["Config", "ConfigManager", "ImportConfig", "ServerConfig"]
