"""
CollectorDAO Governance

Provides:
  - MembershipRegistry                                    (membership.py)
  - Action / Proposal / ProposalState / ProposalStore    (proposals.py)
  - Support / Receipt / ReceiptLedger / quorum_votes     (voting.py)
  - GovernanceEngine                                      (governor.py)
  - ActionDispatcher / GovernanceExecutor                 (execution.py)
"""

from ..exceptions import GovernanceError
from .membership import (
    AlreadyMemberError,
    InvalidStakeError,
    MembershipError,
    MembershipRegistry,
)
from .proposals import (
    Action,
    ArityMismatchError,
    EmptyActionSetError,
    InvalidActionError,
    InvalidProposalError,
    InvalidProposalIdError,
    Proposal,
    ProposalLifecycleError,
    ProposalState,
    ProposalStore,
)
from .voting import (
    AlreadyVotedError,
    NotAMemberError,
    Receipt,
    ReceiptLedger,
    Support,
    VotingClosedError,
    VotingError,
    quorum_votes,
)
from .governor import GovernanceEngine
from .execution import (
    ActionDispatcher,
    CallbackDispatcher,
    DispatchedCall,
    ExecutionFailedError,
    GovernanceExecutor,
    RecordingDispatcher,
    TimelockNotReadyError,
    UnauthorizedError,
)

__all__ = [
    "GovernanceError",
    # Membership
    "AlreadyMemberError",
    "InvalidStakeError",
    "MembershipError",
    "MembershipRegistry",
    # Proposals
    "Action",
    "ArityMismatchError",
    "EmptyActionSetError",
    "InvalidActionError",
    "InvalidProposalError",
    "InvalidProposalIdError",
    "Proposal",
    "ProposalLifecycleError",
    "ProposalState",
    "ProposalStore",
    # Voting
    "AlreadyVotedError",
    "NotAMemberError",
    "Receipt",
    "ReceiptLedger",
    "Support",
    "VotingClosedError",
    "VotingError",
    "quorum_votes",
    # Engine
    "GovernanceEngine",
    # Execution
    "ActionDispatcher",
    "CallbackDispatcher",
    "DispatchedCall",
    "ExecutionFailedError",
    "GovernanceExecutor",
    "RecordingDispatcher",
    "TimelockNotReadyError",
    "UnauthorizedError",
]
