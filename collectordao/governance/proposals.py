"""
Governance Proposals

Defines the action batch, the proposal record and its eight lifecycle
states, and the ProposalStore that owns the proposal counter.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Sequence, Tuple, Union

from eth_utils import decode_hex, function_signature_to_4byte_selector

from ..address import normalize_address
from ..exceptions import GovernanceError
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class InvalidProposalError(GovernanceError):
    """Raised when proposal data is invalid."""


class ArityMismatchError(InvalidProposalError):
    """targets / values / signatures / calldatas differ in length."""


class EmptyActionSetError(InvalidProposalError):
    """Proposal carries no actions."""


class InvalidActionError(InvalidProposalError):
    """A single action has a malformed field."""


class InvalidProposalIdError(GovernanceError):
    """Proposal id is 0 or was never allocated."""


class ProposalLifecycleError(GovernanceError):
    """Raised on illegal state transitions."""


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ProposalState(IntEnum):
    """Derived lifecycle state; never stored, always computed from the record."""
    PENDING = 0     # Created, voting window not yet open
    ACTIVE = 1      # Voting window open
    CANCELED = 2    # Canceled by proposer or guardian
    DEFEATED = 3    # Window closed without majority or quorum
    SUCCEEDED = 4   # Window closed with majority and quorum, not queued
    QUEUED = 5      # eta set, awaiting execution
    EXPIRED = 6     # Not executed before the execution window closed
    EXECUTED = 7    # Action batch dispatched


# ══════════════════════════════════════════════════════════════════════
#  ACTION
# ══════════════════════════════════════════════════════════════════════

CalldataLike = Union[bytes, bytearray, str]


def _to_calldata(calldata: CalldataLike) -> bytes:
    if isinstance(calldata, (bytes, bytearray)):
        return bytes(calldata)
    if isinstance(calldata, str):
        if calldata in ("", "0x"):
            return b""
        try:
            return decode_hex(calldata)
        except ValueError as e:
            raise InvalidActionError(f"Calldata is not valid hex: {calldata!r}") from e
    raise InvalidActionError(f"Calldata must be bytes or a hex string, got {type(calldata).__name__}")


@dataclass(frozen=True)
class Action:
    """
    One external call of a proposal's batch.

    Fields:
        target:     Address the call is sent to
        value:      Wei sent with the call
        signature:  Function signature, e.g. "transfer(address,uint256)", or ""
        calldata:   ABI-encoded arguments (or the full payload when signature is "")
    """
    target: str
    value: int = 0
    signature: str = ""
    calldata: bytes = b""

    @classmethod
    def create(cls, target: str, value: int = 0, signature: str = "",
               calldata: CalldataLike = b"") -> "Action":
        """Validate and normalise the raw fields of an action."""
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidActionError(f"Action value must be a non-negative integer, got {value!r}")
        if not isinstance(signature, str):
            raise InvalidActionError("Action signature must be a string")
        return cls(
            target=normalize_address(target),
            value=value,
            signature=signature,
            calldata=_to_calldata(calldata),
        )

    @property
    def selector(self) -> bytes:
        if not self.signature:
            return b""
        return function_signature_to_4byte_selector(self.signature)

    @property
    def payload(self) -> bytes:
        """Bytes handed to the dispatcher: selector + calldata, or calldata alone."""
        return self.selector + self.calldata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "value": str(self.value),
            "signature": self.signature,
            "calldata": "0x" + self.calldata.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        return cls.create(
            target=data["target"],
            value=int(data.get("value", 0)),
            signature=data.get("signature", ""),
            calldata=data.get("calldata", b""),
        )


def build_actions(
    targets: Sequence[str],
    values: Sequence[int],
    signatures: Sequence[str],
    calldatas: Sequence[CalldataLike],
) -> Tuple[Action, ...]:
    """
    Zip the four parallel sequences into Actions.

    Raises ArityMismatchError when the lengths differ and
    EmptyActionSetError when all four are empty.
    """
    lengths = (len(targets), len(values), len(signatures), len(calldatas))
    if len(set(lengths)) != 1:
        raise ArityMismatchError(
            "CollectorDAO:: proposal function information arity mismatch "
            f"(targets={lengths[0]}, values={lengths[1]}, "
            f"signatures={lengths[2]}, calldatas={lengths[3]})"
        )
    if lengths[0] == 0:
        raise EmptyActionSetError("CollectorDAO:: must provide actions")
    return tuple(
        Action.create(t, v, s, c)
        for t, v, s, c in zip(targets, values, signatures, calldatas)
    )


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Governance proposal record.

    Fields:
        id:             Sequential identifier, 1-indexed, never reused
        proposer:       Address that submitted the proposal
        actions:        Ordered action batch (at least one)
        start_block:    Creation block + voting delay
        end_block:      start_block + voting period
        description:    Free-text rationale
        eta:            Execution-eligibility timestamp, 0 until queued
        for_votes:      Votes in favour
        against_votes:  Votes against
        abstain_votes:  Reserved; no operation increments it
        canceled:       Set once by cancel
        executed:       Set once by a successful execution
    """
    id: int
    proposer: str
    actions: Tuple[Action, ...]
    start_block: int
    end_block: int
    description: str = ""
    eta: int = 0
    for_votes: int = 0
    against_votes: int = 0
    abstain_votes: int = 0
    canceled: bool = False
    executed: bool = False

    def __post_init__(self):
        if self.id < 1:
            raise InvalidProposalError("Proposal id must be >= 1")
        if not self.actions:
            raise EmptyActionSetError("CollectorDAO:: must provide actions")
        if self.end_block < self.start_block:
            raise InvalidProposalError("Voting window ends before it starts")
        self.actions = tuple(self.actions)

    # ── Parallel views ────────────────────────────────────────────────

    @property
    def targets(self) -> List[str]:
        return [a.target for a in self.actions]

    @property
    def values(self) -> List[int]:
        return [a.value for a in self.actions]

    @property
    def signatures(self) -> List[str]:
        return [a.signature for a in self.actions]

    @property
    def calldatas(self) -> List[bytes]:
        return [a.calldata for a in self.actions]

    @property
    def total_votes(self) -> int:
        return self.for_votes + self.against_votes + self.abstain_votes

    def snapshot(self) -> "Proposal":
        """Detached copy for readers; actions are immutable and shared."""
        return dataclasses.replace(self)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": self.proposer,
            "actions": [a.to_dict() for a in self.actions],
            "startBlock": self.start_block,
            "endBlock": self.end_block,
            "description": self.description,
            "eta": self.eta,
            "forVotes": self.for_votes,
            "againstVotes": self.against_votes,
            "abstainVotes": self.abstain_votes,
            "canceled": self.canceled,
            "executed": self.executed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        return cls(
            id=data["id"],
            proposer=normalize_address(data["proposer"]),
            actions=tuple(Action.from_dict(a) for a in data["actions"]),
            start_block=data["startBlock"],
            end_block=data["endBlock"],
            description=data.get("description", ""),
            eta=data.get("eta", 0),
            for_votes=data.get("forVotes", 0),
            against_votes=data.get("againstVotes", 0),
            abstain_votes=data.get("abstainVotes", 0),
            canceled=data.get("canceled", False),
            executed=data.get("executed", False),
        )

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} actions={len(self.actions)} "
            f"for={self.for_votes} against={self.against_votes} "
            f"window=[{self.start_block}, {self.end_block}]>"
        )


# ══════════════════════════════════════════════════════════════════════
#  STORE
# ══════════════════════════════════════════════════════════════════════

class ProposalStore:
    """
    Authoritative id → Proposal mapping.

    Owns the proposal counter: it starts at 0, is incremented exactly once
    per stored proposal and is never decremented, so ids are 1..count.
    """

    def __init__(self):
        self._proposals: Dict[int, Proposal] = {}
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def create(
        self,
        proposer: str,
        actions: Tuple[Action, ...],
        start_block: int,
        end_block: int,
        description: str = "",
    ) -> Proposal:
        """Allocate the next id and store a fresh proposal."""
        proposal = Proposal(
            id=self._count + 1,
            proposer=proposer,
            actions=actions,
            start_block=start_block,
            end_block=end_block,
            description=description,
        )
        self._count = proposal.id
        self._proposals[proposal.id] = proposal
        return proposal

    def get(self, proposal_id: int) -> Proposal:
        if (
            isinstance(proposal_id, bool)
            or not isinstance(proposal_id, int)
            or proposal_id < 1
            or proposal_id > self._count
        ):
            raise InvalidProposalIdError(
                f"CollectorDAO:: invalid proposal id {proposal_id!r} "
                f"(highest allocated is {self._count})"
            )
        return self._proposals[proposal_id]

    def __contains__(self, proposal_id: int) -> bool:
        return proposal_id in self._proposals

    def __iter__(self) -> Iterator[Proposal]:
        return iter(self._proposals[i] for i in sorted(self._proposals))

    def __len__(self) -> int:
        return self._count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalCount": self._count,
            "proposals": [p.to_dict() for p in self],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalStore":
        store = cls()
        proposals = [Proposal.from_dict(p) for p in data.get("proposals", [])]
        expected = list(range(1, len(proposals) + 1))
        if sorted(p.id for p in proposals) != expected:
            raise ValueError("Proposal ids must be contiguous from 1")
        count = data.get("proposalCount", len(proposals))
        if count != len(proposals):
            raise ValueError(
                f"Proposal counter {count} does not match {len(proposals)} stored proposals"
            )
        for p in proposals:
            store._proposals[p.id] = p
        store._count = count
        return store

    def __repr__(self) -> str:
        return f"<ProposalStore count={self._count}>"
