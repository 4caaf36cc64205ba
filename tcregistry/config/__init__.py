"""Configuration module for tcregistry."""

from tcregistry.config.settings import RegistryConfig, load_config

__all__ = ["RegistryConfig", "load_config"]
