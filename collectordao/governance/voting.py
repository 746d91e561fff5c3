"""
Member Voting — receipts and quorum

Implements:
  - One member = one vote
  - Vote classifications: For / Against / Abstain (abstain is reserved;
    the voting entry point only accepts a binary support flag)
  - Per-proposal, per-voter receipts preventing double voting
  - Quorum: floor(25% of current total membership), recomputed live
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterator, Tuple

from ..address import normalize_address
from ..constants import (
    GOVERNANCE_QUORUM_PERCENTAGE,
    GOVERNANCE_VOTE_ABSTAIN,
    GOVERNANCE_VOTE_AGAINST,
    GOVERNANCE_VOTE_FOR,
)
from ..exceptions import GovernanceError
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class VotingError(GovernanceError):
    """Base voting error."""


class NotAMemberError(VotingError):
    """Voter has not paid the membership stake."""


class VotingClosedError(VotingError):
    """Proposal is not in the Active state."""


class AlreadyVotedError(VotingError):
    """Voter already cast a vote on this proposal."""


# ══════════════════════════════════════════════════════════════════════
#  VOTE DATA
# ══════════════════════════════════════════════════════════════════════

class Support(IntEnum):
    """Vote classification, matching the on-chain uint8 encoding."""
    AGAINST = GOVERNANCE_VOTE_AGAINST
    FOR = GOVERNANCE_VOTE_FOR
    ABSTAIN = GOVERNANCE_VOTE_ABSTAIN

    @classmethod
    def from_bool(cls, support: bool) -> "Support":
        return cls.FOR if support else cls.AGAINST


@dataclass(frozen=True)
class Receipt:
    """Whether and how an address voted on one proposal."""
    has_voted: bool = False
    support: Support = Support.AGAINST

    def to_dict(self) -> Dict[str, Any]:
        return {"hasVoted": self.has_voted, "support": self.support.name}


_NOT_VOTED = Receipt()


def quorum_votes(total_members: int, percentage: int = GOVERNANCE_QUORUM_PERCENTAGE) -> int:
    """Minimum FOR votes: floor(percentage × total_members / 100)."""
    return (percentage * total_members) // 100


# ══════════════════════════════════════════════════════════════════════
#  RECEIPT LEDGER
# ══════════════════════════════════════════════════════════════════════

class ReceiptLedger:
    """
    (proposal id, voter) → Receipt.

    A receipt is written at most once and never reset. The ledger does not
    lock; the governance engine serializes access.
    """

    def __init__(self):
        self._receipts: Dict[Tuple[int, str], Receipt] = {}

    def get(self, proposal_id: int, voter: str) -> Receipt:
        return self._receipts.get((proposal_id, voter), _NOT_VOTED)

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return self.get(proposal_id, voter).has_voted

    def record(self, proposal_id: int, voter: str, support: Support) -> Receipt:
        key = (proposal_id, voter)
        if key in self._receipts:
            raise AlreadyVotedError(
                f"CollectorDAO:: {voter} already voted on proposal #{proposal_id}"
            )
        receipt = Receipt(has_voted=True, support=Support(support))
        self._receipts[key] = receipt
        return receipt

    def entries(self) -> Iterator[Tuple[int, str, Receipt]]:
        """(proposal id, voter, receipt) for every recorded vote."""
        for (pid, voter), receipt in self._receipts.items():
            yield pid, voter, receipt

    def voter_count(self, proposal_id: int) -> int:
        return sum(1 for pid, _ in self._receipts if pid == proposal_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "receipts": [
                {"proposalId": pid, "voter": voter, "support": r.support.name}
                for (pid, voter), r in self._receipts.items()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReceiptLedger":
        ledger = cls()
        for entry in data.get("receipts", []):
            ledger.record(
                entry["proposalId"],
                normalize_address(entry["voter"]),
                Support[entry["support"]],
            )
        return ledger

    def __len__(self) -> int:
        return len(self._receipts)

    def __repr__(self) -> str:
        return f"<ReceiptLedger receipts={len(self._receipts)}>"
