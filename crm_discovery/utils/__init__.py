"""Utility modules for CRM API discovery."""

from .config import DiscoveryConfig, load_config

__all__ = [
    "DiscoveryConfig",
    "load_config",
]
