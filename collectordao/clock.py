"""
Block Clock

The governance engine never reads wall-clock time directly. It asks a Clock
for the current block index (voting windows) and timestamp (eta / expiry).
ManualClock is the in-process implementation used by the CLI and tests.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .constants import BLOCK_TIME
from .exceptions import ClockError
from .logger import get_logger

logger = get_logger(__name__)


class Clock(ABC):
    """Source of a monotonically non-decreasing block index and timestamp."""

    @property
    @abstractmethod
    def block_number(self) -> int:
        ...

    @property
    @abstractmethod
    def timestamp(self) -> int:
        ...


class ManualClock(Clock):
    """
    Clock advanced explicitly by the caller.

    Both the block counter and the timestamp only move forward; an attempt
    to move either backwards raises ClockError.
    """

    def __init__(self, block_number: int = 0, timestamp: Optional[int] = None,
                 block_time: int = BLOCK_TIME):
        if block_number < 0:
            raise ClockError("Block number cannot be negative")
        if block_time < 0:
            raise ClockError("Block time cannot be negative")
        self._block_number = block_number
        self._timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self.block_time = block_time

    @property
    def block_number(self) -> int:
        return self._block_number

    @property
    def timestamp(self) -> int:
        return self._timestamp

    def mine(self, blocks: int = 1, seconds: Optional[int] = None) -> int:
        """
        Advance *blocks* blocks. The timestamp advances by *seconds*, or by
        ``blocks * block_time`` when not given. Returns the new block number.
        """
        if blocks < 0:
            raise ClockError(f"Cannot mine a negative number of blocks ({blocks})")
        elapsed = blocks * self.block_time if seconds is None else seconds
        if elapsed < 0:
            raise ClockError(f"Cannot move time backwards ({elapsed}s)")
        self._block_number += blocks
        self._timestamp += elapsed
        logger.debug(f"Mined {blocks} block(s) → block {self._block_number} @ {self._timestamp}")
        return self._block_number

    def set_timestamp(self, timestamp: int) -> None:
        """Jump wall-clock time forward without producing blocks."""
        if timestamp < self._timestamp:
            raise ClockError(
                f"Timestamp {timestamp} is earlier than current {self._timestamp}"
            )
        self._timestamp = int(timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blockNumber": self._block_number,
            "timestamp": self._timestamp,
            "blockTime": self.block_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManualClock":
        return cls(
            block_number=data["blockNumber"],
            timestamp=data["timestamp"],
            block_time=data.get("blockTime", BLOCK_TIME),
        )

    def __repr__(self) -> str:
        return f"<ManualClock block={self._block_number} ts={self._timestamp}>"
