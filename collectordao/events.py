"""
Governance Events

Records emitted for external observers and indexers. Every successful
state-mutating operation appends exactly one event to the EventLog.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NewMemberAdded:
    """Emitted when an address pays the stake and becomes a member."""
    member: str
    amount: int
    total_members: int
    block_number: int

    name = "NewMemberAdded"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "member": self.member,
            "amount": str(self.amount),
            "totalMembers": self.total_members,
            "blockNumber": self.block_number,
        }


@dataclass(frozen=True)
class ProposalCreated:
    """Emitted on proposal submission, carrying the full action batch."""
    proposal_id: int
    proposer: str
    targets: Tuple[str, ...]
    values: Tuple[int, ...]
    signatures: Tuple[str, ...]
    calldatas: Tuple[bytes, ...]
    start_block: int
    end_block: int
    description: str

    name = "ProposalCreated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "proposalId": self.proposal_id,
            "proposer": self.proposer,
            "targets": list(self.targets),
            "values": [str(v) for v in self.values],
            "signatures": list(self.signatures),
            "calldatas": ["0x" + c.hex() for c in self.calldatas],
            "startBlock": self.start_block,
            "endBlock": self.end_block,
            "description": self.description,
        }


@dataclass(frozen=True)
class VoteCast:
    """Emitted for every counted vote."""
    voter: str
    proposal_id: int
    support: bool

    name = "VoteCast"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "voter": self.voter,
            "proposalId": self.proposal_id,
            "support": self.support,
        }


@dataclass(frozen=True)
class ProposalCanceled:
    proposal_id: int
    canceled_by: str

    name = "ProposalCanceled"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "proposalId": self.proposal_id,
            "canceledBy": self.canceled_by,
        }


@dataclass(frozen=True)
class ProposalQueued:
    proposal_id: int
    eta: int

    name = "ProposalQueued"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "proposalId": self.proposal_id, "eta": self.eta}


@dataclass(frozen=True)
class ProposalExecuted:
    proposal_id: int

    name = "ProposalExecuted"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, "proposalId": self.proposal_id}


class EventLog:
    """
    Ordered, append-only log of emitted events.

    Subscribers are called synchronously, in subscription order, after the
    event is appended. A subscriber that raises is logged and skipped; the
    operation that emitted the event has already completed.
    """

    def __init__(self):
        self._events: List[Any] = []
        self._subscribers: List[Callable[[Any], None]] = []
        self._lock = threading.Lock()

    def emit(self, event: Any) -> None:
        with self._lock:
            self._events.append(event)
            subscribers = list(self._subscribers)
        logger.debug(f"[{event.name}] {event.to_dict()}")
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Event subscriber failed on {event.name}")

    def subscribe(self, callback: Callable[[Any], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Any], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def events(self) -> List[Any]:
        with self._lock:
            return list(self._events)

    def filter(self, name: Optional[str] = None) -> List[Any]:
        """Events with the given name, or all events when *name* is None."""
        return [e for e in self.events if name is None or e.name == name]

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"<EventLog events={len(self._events)} subscribers={len(self._subscribers)}>"
