"""
CollectorDAO Configuration

Loads collectordao.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    DAOConfig,
    GovernanceConfig,
    LoggingConfig,
    StorageConfig,
    load_config,
)

__all__ = [
    "DAOConfig",
    "GovernanceConfig",
    "LoggingConfig",
    "StorageConfig",
    "load_config",
]
