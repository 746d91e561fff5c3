"""
CollectorDAO Constants

This module consolidates the protocol constants and the environment
configuration used throughout the codebase. Constants are organized by
category for easy reference and maintenance.
"""
import ast

from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
    'LOG_FILE_PATH':                   '',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE GOVERNANCE VALUES BELOW DEFINE THE RULES EVERY MEMBER AGREED TO WHEN
# PAYING THE STAKE. CHANGING THEM ON A LIVE DAO CHANGES THE OUTCOME OF PROPOSALS
# THAT ARE ALREADY IN FLIGHT.

# ==================================================================================
# CORE PROTOCOL CONSTANTS
# ==================================================================================
WEI_PER_ETHER = 10 ** 18
BLOCK_TIME = 15  # Seconds per block used by the simulated clock


# ==================================================================================
# MEMBERSHIP
# ==================================================================================
# Exactly one ether buys a membership; over- and under-payment are both rejected
MEMBERSHIP_STAKE_WEI = 1 * WEI_PER_ETHER


# ==================================================================================
# GOVERNANCE PARAMETERS
# ==================================================================================
GOVERNANCE_VOTING_DELAY_BLOCKS = 1
GOVERNANCE_VOTING_PERIOD_BLOCKS = 51_840  # ~9 days at 15s/block
GOVERNANCE_QUORUM_PERCENTAGE = 25  # Of current total membership, floored

# Vote classifications (uint8 on-chain encoding)
GOVERNANCE_VOTE_AGAINST = 0
GOVERNANCE_VOTE_FOR = 1
GOVERNANCE_VOTE_ABSTAIN = 2


# ==================================================================================
# EXECUTION
# ==================================================================================
GOVERNANCE_TIMELOCK_DELAY_SECONDS = 2 * 86400  # eta = queue time + delay
GOVERNANCE_GRACE_PERIOD_SECONDS = 14 * 86400  # Queued → Expired after eta + grace


# ==================================================================================
# .ENV VALUE WRAPPERS
# ==================================================================================
class ConfigString(str):
    """A `.env` string that remembers the built-in default it overrode."""
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default


class ConfigBool(int):
    """A `.env` flag usable as a bool, remembering its built-in default."""
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return repr(bool(self))

    __str__ = __repr__

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


def parse_bool(v):
    """"true"/"false" in any casing become bools; anything else is returned unchanged."""
    if isinstance(v, str) and v.strip().casefold() in ("true", "false"):
        return ast.literal_eval(v.strip().title())
    return v


def _load_logger_settings(env, defaults):
    settings = {}
    for key, fallback in defaults.items():
        # dotenv_values maps keys without a value to None
        raw = env.get(key)
        raw = fallback if raw is None else raw
        value, default = parse_bool(raw), parse_bool(fallback)
        if isinstance(value, bool):
            settings[key] = ConfigBool(value, default)
        else:
            settings[key] = ConfigString(raw, default)
    return settings


globals().update(_load_logger_settings(_config, LOGGER_DEFAULTS))
