"""
CollectorDAO TOML Configuration Loader

Loads every section of collectordao.toml with environment variable overrides
(dataclass + from_dict + from_file).

Environment variable mapping:
    [governance] voting_period  → COLLECTORDAO_VOTING_PERIOD
    [logging] level             → COLLECTORDAO_LOG_LEVEL
    [storage] state_file        → COLLECTORDAO_STATE_FILE
    ...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..address import normalize_address
from ..constants import (
    BLOCK_TIME,
    GOVERNANCE_GRACE_PERIOD_SECONDS,
    GOVERNANCE_QUORUM_PERCENTAGE,
    GOVERNANCE_TIMELOCK_DELAY_SECONDS,
    GOVERNANCE_VOTING_DELAY_BLOCKS,
    GOVERNANCE_VOTING_PERIOD_BLOCKS,
    MEMBERSHIP_STAKE_WEI,
)
from ..exceptions import ConfigurationError, InvalidAddressError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "collectordao.toml"
DEFAULT_STATE_FILE = "collectordao-state.json"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if v is None or v == "":
        return None
    try:
        return int(v)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from e


# ---------------------------------------------------------------------------
# Section dataclasses: one per [section] of collectordao.example.toml
# ---------------------------------------------------------------------------


@dataclass
class GovernanceConfig:
    """[governance] section."""
    membership_stake: int = MEMBERSHIP_STAKE_WEI
    voting_delay: int = GOVERNANCE_VOTING_DELAY_BLOCKS
    voting_period: int = GOVERNANCE_VOTING_PERIOD_BLOCKS
    quorum_percentage: int = GOVERNANCE_QUORUM_PERCENTAGE
    timelock_delay: int = GOVERNANCE_TIMELOCK_DELAY_SECONDS
    grace_period: int = GOVERNANCE_GRACE_PERIOD_SECONDS
    block_time: int = BLOCK_TIME
    guardians: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        return cls(
            membership_stake=int(data.get("membership_stake", MEMBERSHIP_STAKE_WEI)),
            voting_delay=data.get("voting_delay", GOVERNANCE_VOTING_DELAY_BLOCKS),
            voting_period=data.get("voting_period", GOVERNANCE_VOTING_PERIOD_BLOCKS),
            quorum_percentage=data.get("quorum_percentage", GOVERNANCE_QUORUM_PERCENTAGE),
            timelock_delay=data.get("timelock_delay", GOVERNANCE_TIMELOCK_DELAY_SECONDS),
            grace_period=data.get("grace_period", GOVERNANCE_GRACE_PERIOD_SECONDS),
            block_time=data.get("block_time", BLOCK_TIME),
            guardians=list(data.get("guardians", [])),
        )

    def apply_env(self) -> None:
        """Apply COLLECTORDAO_* integer and guardian overrides."""
        if (v := _env_int("COLLECTORDAO_MEMBERSHIP_STAKE")) is not None:
            self.membership_stake = v
        if (v := _env_int("COLLECTORDAO_VOTING_DELAY")) is not None:
            self.voting_delay = v
        if (v := _env_int("COLLECTORDAO_VOTING_PERIOD")) is not None:
            self.voting_period = v
        if (v := _env_int("COLLECTORDAO_QUORUM_PERCENTAGE")) is not None:
            self.quorum_percentage = v
        if (v := _env_int("COLLECTORDAO_TIMELOCK_DELAY")) is not None:
            self.timelock_delay = v
        if (v := _env_int("COLLECTORDAO_GRACE_PERIOD")) is not None:
            self.grace_period = v
        if v := os.environ.get("COLLECTORDAO_GUARDIANS"):
            self.guardians = [g.strip() for g in v.split(",") if g.strip()]

    def validate(self) -> None:
        if self.membership_stake <= 0:
            raise ValueError("membership_stake must be > 0")
        if self.voting_delay < 0:
            raise ValueError("voting_delay must be >= 0")
        if self.voting_period < 1:
            raise ValueError("voting_period must be >= 1")
        if not 0 <= self.quorum_percentage <= 100:
            raise ValueError("quorum_percentage must be within 0..100")
        if self.timelock_delay < 0:
            raise ValueError("timelock_delay must be >= 0")
        if self.grace_period < 0:
            raise ValueError("grace_period must be >= 0")
        if self.block_time < 0:
            raise ValueError("block_time must be >= 0")
        self.guardians = [normalize_address(g) for g in self.guardians]


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    console: bool = True
    file: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            console=data.get("console", True),
            file=data.get("file", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("COLLECTORDAO_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("COLLECTORDAO_LOG_FILE"):
            self.file = v


@dataclass
class StorageConfig:
    """[storage] section."""
    state_file: str = DEFAULT_STATE_FILE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageConfig":
        return cls(state_file=data.get("state_file", DEFAULT_STATE_FILE))

    def apply_env(self) -> None:
        if v := os.environ.get("COLLECTORDAO_STATE_FILE"):
            self.state_file = v


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class DAOConfig:
    """Complete configuration, one attribute per TOML section."""
    governance: GovernanceConfig = field(default_factory=GovernanceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DAOConfig":
        return cls(
            governance=GovernanceConfig.from_dict(data.get("governance", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
            storage=StorageConfig.from_dict(data.get("storage", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "DAOConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with environment overrides); a file
        that is not valid TOML raises ConfigurationError.
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug("Config file not found: %s — using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """COLLECTORDAO_* variables win over file values in every section."""
        self.governance.apply_env()
        self.logging.apply_env()
        self.storage.apply_env()

    def validate(self) -> bool:
        """
        Check every section, normalising guardian addresses.

        Raises ValueError (or InvalidAddressError for a bad guardian).
        """
        self.governance.validate()
        if self.logging.level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")
        if not self.storage.state_file:
            raise ValueError("state_file cannot be empty")
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict view of the effective configuration."""
        return {
            "governance": {
                "membership_stake": str(self.governance.membership_stake),
                "voting_delay": self.governance.voting_delay,
                "voting_period": self.governance.voting_period,
                "quorum_percentage": self.governance.quorum_percentage,
                "timelock_delay": self.governance.timelock_delay,
                "grace_period": self.governance.grace_period,
                "block_time": self.governance.block_time,
                "guardians": list(self.governance.guardians),
            },
            "logging": {
                "level": self.logging.level,
                "console": self.logging.console,
                "file": self.logging.file,
            },
            "storage": {
                "state_file": self.storage.state_file,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> DAOConfig:
    """
    Load DAO configuration.

    Resolution order:
        1. Explicit *path* argument
        2. COLLECTORDAO_CONFIG env var
        3. ./collectordao.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("COLLECTORDAO_CONFIG", DEFAULT_CONFIG_FILE)

    cfg = DAOConfig.from_file(path)
    try:
        cfg.validate()
    except (ValueError, InvalidAddressError) as e:
        raise ConfigurationError(str(e)) from e
    return cfg
