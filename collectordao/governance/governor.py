"""
Governance Engine

The proposal lifecycle state machine: membership entry points, proposal
creation, state derivation, quorum and vote casting.

Every entry point runs under one re-entrant lock. Mutating calls perform
all of their checks before the first write, so a failed call leaves the
registry, the store and the ledger exactly as they were, and readers never
observe a proposal mid-mutation.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence

from ..address import normalize_address
from ..clock import Clock
from ..config.loader import GovernanceConfig
from ..events import EventLog, NewMemberAdded, ProposalCreated, VoteCast
from ..exceptions import CollectorDAOException
from ..logger import get_logger
from .membership import MembershipRegistry
from .proposals import (
    CalldataLike,
    Proposal,
    ProposalState,
    ProposalStore,
    build_actions,
)
from .voting import (
    NotAMemberError,
    Receipt,
    ReceiptLedger,
    Support,
    VotingClosedError,
    VotingError,
    quorum_votes,
)

logger = get_logger(__name__)


class GovernanceEngine:
    """
    Membership-gated governor.

    Responsibilities:
        - Accept exact-stake membership payments
        - Create proposals with a block-based voting window
        - Derive a proposal's state from its record and the clock
        - Accept one vote per member per proposal while Active
        - Compute quorum live against current membership
    """

    def __init__(
        self,
        clock: Clock,
        config: Optional[GovernanceConfig] = None,
        events: Optional[EventLog] = None,
        registry: Optional[MembershipRegistry] = None,
        store: Optional[ProposalStore] = None,
        ledger: Optional[ReceiptLedger] = None,
    ):
        self.clock = clock
        self.config = config or GovernanceConfig()
        self.config.validate()
        self.events = events if events is not None else EventLog()

        self._registry = registry or MembershipRegistry(stake=self.config.membership_stake)
        self._proposals = store or ProposalStore()
        self._receipts = ledger or ReceiptLedger()

        self._lock = threading.RLock()

    # ── Membership ────────────────────────────────────────────────────

    def join(self, address: str, paid_amount: int) -> bool:
        """Pay the stake and become a member. Returns True on success."""
        with self._lock:
            try:
                member = self._registry.join(address, paid_amount)
            except CollectorDAOException as e:
                logger.debug(f"join rejected: {e}")
                raise
            self.events.emit(NewMemberAdded(
                member=member,
                amount=paid_amount,
                total_members=self._registry.total_members,
                block_number=self.clock.block_number,
            ))
            return True

    def is_member(self, address: str) -> bool:
        with self._lock:
            return self._registry.is_member(address)

    @property
    def total_members(self) -> int:
        with self._lock:
            return self._registry.total_members

    @property
    def membership_stake(self) -> int:
        return self._registry.stake

    def members(self) -> List[str]:
        with self._lock:
            return self._registry.members()

    # ── Parameters ────────────────────────────────────────────────────

    def voting_delay(self) -> int:
        """Blocks between creation and the start of voting."""
        return self.config.voting_delay

    def voting_period(self) -> int:
        """Length of the voting window in blocks."""
        return self.config.voting_period

    def quorum_votes(self) -> int:
        """FOR votes required, against the membership as it is right now."""
        with self._lock:
            return quorum_votes(self._registry.total_members, self.config.quorum_percentage)

    # ── Proposal creation ─────────────────────────────────────────────

    def propose(
        self,
        proposer: str,
        targets: Sequence[str],
        values: Sequence[int],
        signatures: Sequence[str],
        calldatas: Sequence[CalldataLike],
        description: str = "",
    ) -> int:
        """
        Submit a batch of actions for a vote. Open to any caller.

        Returns the new proposal id. Raises ArityMismatchError when the four
        sequences differ in length and EmptyActionSetError when they are empty.
        """
        with self._lock:
            try:
                actions = build_actions(targets, values, signatures, calldatas)
                proposer = normalize_address(proposer)
            except CollectorDAOException as e:
                logger.debug(f"propose rejected: {e}")
                raise

            start_block = self.clock.block_number + self.config.voting_delay
            end_block = start_block + self.config.voting_period

            proposal = self._proposals.create(
                proposer=proposer,
                actions=actions,
                start_block=start_block,
                end_block=end_block,
                description=description,
            )

            self.events.emit(ProposalCreated(
                proposal_id=proposal.id,
                proposer=proposer,
                targets=tuple(proposal.targets),
                values=tuple(proposal.values),
                signatures=tuple(proposal.signatures),
                calldatas=tuple(proposal.calldatas),
                start_block=start_block,
                end_block=end_block,
                description=description,
            ))
            logger.info(
                f"Proposal #{proposal.id} created by {proposer}: "
                f"{len(actions)} action(s), voting blocks [{start_block}, {end_block}]"
            )
            return proposal.id

    # ── State derivation ──────────────────────────────────────────────

    def state(self, proposal_id: int) -> ProposalState:
        """Current lifecycle state. Raises InvalidProposalIdError for unknown ids."""
        with self._lock:
            return self._derive_state(self._proposals.get(proposal_id))

    def _derive_state(self, proposal: Proposal) -> ProposalState:
        """
        First matching rule wins.

        A queued proposal expires once timestamp ≥ eta + grace_period. With
        the default 14-day grace period a proposal is still QUEUED (and so
        executable) at timestamp == eta; grace_period = 0 restores the bare
        "timestamp ≥ eta → EXPIRED" rule, under which nothing queued can
        ever execute.
        """
        block = self.clock.block_number
        if proposal.canceled:
            return ProposalState.CANCELED
        if block <= proposal.start_block:
            return ProposalState.PENDING
        if block <= proposal.end_block:
            return ProposalState.ACTIVE
        if (
            proposal.for_votes <= proposal.against_votes
            or proposal.for_votes < self.quorum_votes()
        ):
            return ProposalState.DEFEATED
        if proposal.eta == 0:
            return ProposalState.SUCCEEDED
        if proposal.executed:
            return ProposalState.EXECUTED
        if self.clock.timestamp >= proposal.eta + self.config.grace_period:
            return ProposalState.EXPIRED
        return ProposalState.QUEUED

    # ── Vote casting ──────────────────────────────────────────────────

    def cast_vote(self, voter: str, proposal_id: int, support: bool) -> Receipt:
        """
        Cast one vote. *support* True counts FOR, False counts AGAINST.

        Raises NotAMemberError, InvalidProposalIdError, VotingClosedError or
        AlreadyVotedError, checked in that order, before anything is written.
        """
        if not isinstance(support, bool):
            raise VotingError(f"support must be a boolean, got {support!r}")

        with self._lock:
            try:
                voter = normalize_address(voter)
                if not self._registry.is_member(voter):
                    raise NotAMemberError(f"CollectorDAO:: {voter} is not a member")

                proposal = self._proposals.get(proposal_id)
                current = self._derive_state(proposal)
                if current != ProposalState.ACTIVE:
                    raise VotingClosedError(
                        f"CollectorDAO:: voting is closed for proposal #{proposal_id} "
                        f"(state={current.name})"
                    )

                # Raises AlreadyVotedError before the tally is touched
                receipt = self._receipts.record(proposal_id, voter, Support.from_bool(support))
            except CollectorDAOException as e:
                logger.debug(f"vote rejected: {e}")
                raise

            if support:
                proposal.for_votes += 1
            else:
                proposal.against_votes += 1

            self.events.emit(VoteCast(voter=voter, proposal_id=proposal_id, support=support))
            logger.info(
                f"Vote: {voter} → {receipt.support.name} on proposal #{proposal_id} "
                f"(for={proposal.for_votes}, against={proposal.against_votes})"
            )
            return receipt

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def proposal_count(self) -> int:
        with self._lock:
            return self._proposals.count

    def proposal(self, proposal_id: int) -> Proposal:
        """Snapshot of the stored record."""
        with self._lock:
            return self._proposals.get(proposal_id).snapshot()

    def proposals(self) -> List[Proposal]:
        with self._lock:
            return [p.snapshot() for p in self._proposals]

    def get_receipt(self, proposal_id: int, voter: str) -> Receipt:
        with self._lock:
            self._proposals.get(proposal_id)
            return self._receipts.get(proposal_id, normalize_address(voter))

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return self.get_receipt(proposal_id, voter).has_voted

    def voter_count(self, proposal_id: int) -> int:
        with self._lock:
            return self._receipts.voter_count(proposal_id)

    # ── Internal access for the executor ──────────────────────────────

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def _record(self, proposal_id: int) -> Proposal:
        """Live, mutable record. Callers must hold `lock`."""
        return self._proposals.get(proposal_id)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            data = {
                "membership": self._registry.to_dict(),
                **self._proposals.to_dict(),
                **self._receipts.to_dict(),
                "quorumVotes": self.quorum_votes(),
                "votingDelay": self.voting_delay(),
                "votingPeriod": self.voting_period(),
            }
            data["states"] = {
                str(p.id): self._derive_state(p).name for p in self._proposals
            }
            return data

    def __repr__(self) -> str:
        return (
            f"<GovernanceEngine members={self._registry.total_members} "
            f"proposals={self._proposals.count}>"
        )
