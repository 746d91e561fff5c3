"""
Proposal Execution — queue, execute, cancel

Implements:
  - ActionDispatcher: the external "invoke target with value and payload"
    capability, plus recording and callback implementations
  - GovernanceExecutor: the lifecycle operations that set `eta`,
    `executed` and `canceled`, each validated against the proposal's
    current state before anything is written
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from ..address import normalize_address
from ..events import ProposalCanceled, ProposalExecuted, ProposalQueued
from ..exceptions import GovernanceError
from ..logger import get_logger
from .governor import GovernanceEngine
from .proposals import Action, ProposalLifecycleError, ProposalState

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TimelockNotReadyError(GovernanceError):
    """Execution attempted before eta."""


class ExecutionFailedError(GovernanceError):
    """An action of the batch could not be dispatched."""


class UnauthorizedError(GovernanceError):
    """Caller may not perform this lifecycle operation."""


# ══════════════════════════════════════════════════════════════════════
#  DISPATCHERS
# ══════════════════════════════════════════════════════════════════════

class ActionDispatcher(ABC):
    """Performs one external call. Raising aborts the whole execution."""

    @abstractmethod
    def invoke(self, target: str, value: int, payload: bytes) -> Any:
        ...


@dataclass(frozen=True)
class DispatchedCall:
    """A call made through a RecordingDispatcher."""
    proposal_id: int
    target: str
    value: int
    payload: bytes
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "target": self.target,
            "value": str(self.value),
            "payload": "0x" + self.payload.hex(),
            "timestamp": self.timestamp,
        }


class RecordingDispatcher(ActionDispatcher):
    """
    Records every call instead of performing it.

    Used where the real call layer lives outside this process (the CLI,
    dry runs, tests).
    """

    def __init__(self):
        self._calls: List[DispatchedCall] = []
        self.current_proposal: int = 0
        self.current_timestamp: int = 0

    def invoke(self, target: str, value: int, payload: bytes) -> None:
        call = DispatchedCall(
            proposal_id=self.current_proposal,
            timestamp=self.current_timestamp,
            target=target,
            value=value,
            payload=payload,
        )
        self._calls.append(call)
        logger.info(f"Dispatched → {target} value={value} payload=0x{payload.hex()}")

    @property
    def calls(self) -> List[DispatchedCall]:
        return list(self._calls)

    def __len__(self) -> int:
        return len(self._calls)


class CallbackDispatcher(ActionDispatcher):
    """Adapts a plain callable(target, value, payload) to ActionDispatcher."""

    def __init__(self, fn: Callable[[str, int, bytes], Any]):
        self._fn = fn

    def invoke(self, target: str, value: int, payload: bytes) -> Any:
        return self._fn(target, value, payload)


# ══════════════════════════════════════════════════════════════════════
#  EXECUTOR
# ══════════════════════════════════════════════════════════════════════

class GovernanceExecutor:
    """
    Drives a proposal past Succeeded.

    queue:    Succeeded → Queued, eta = now + timelock delay
    execute:  Queued (and now ≥ eta) → Executed, dispatching every action
    cancel:   any state but Executed/Canceled → Canceled, by proposer or guardian
    """

    def __init__(
        self,
        engine: GovernanceEngine,
        dispatcher: Optional[ActionDispatcher] = None,
        timelock_delay: Optional[int] = None,
        guardians: Optional[List[str]] = None,
    ):
        self.engine = engine
        self.dispatcher = dispatcher or RecordingDispatcher()
        self.timelock_delay = (
            engine.config.timelock_delay if timelock_delay is None else timelock_delay
        )
        if self.timelock_delay < 0:
            raise ValueError("Timelock delay cannot be negative")
        self.guardians = {
            normalize_address(g)
            for g in (engine.config.guardians if guardians is None else guardians)
        }
        self._execution_log: List[Dict[str, Any]] = []
        self._executing: Set[int] = set()

    # ── Queue ─────────────────────────────────────────────────────────

    def queue(self, proposal_id: int) -> int:
        """Set eta on a Succeeded proposal. Returns the eta."""
        with self.engine.lock:
            proposal = self.engine._record(proposal_id)
            current = self.engine.state(proposal_id)
            if current != ProposalState.SUCCEEDED:
                raise ProposalLifecycleError(
                    f"CollectorDAO:: proposal #{proposal_id} can only be queued if "
                    f"it is SUCCEEDED (state={current.name})"
                )

            eta = self.engine.clock.timestamp + self.timelock_delay
            if eta == 0:
                # eta 0 means "not queued"; a genesis-time clock must still queue
                eta = 1
            proposal.eta = eta

            self.engine.events.emit(ProposalQueued(proposal_id=proposal_id, eta=eta))
            logger.info(f"Proposal #{proposal_id} QUEUED (eta={eta})")
            return eta

    # ── Execute ───────────────────────────────────────────────────────

    def execute(self, proposal_id: int) -> List[Any]:
        """
        Dispatch the action batch of a Queued proposal whose eta has passed.

        Returns the dispatcher results in action order. If any call raises,
        ExecutionFailedError is raised and the proposal stays Queued.
        """
        with self.engine.lock:
            proposal = self.engine._record(proposal_id)
            if proposal_id in self._executing:
                # The engine lock is re-entrant, so a dispatcher calling back
                # in would otherwise see the proposal still QUEUED
                raise ProposalLifecycleError(
                    f"CollectorDAO:: proposal #{proposal_id} is already being executed"
                )
            current = self.engine.state(proposal_id)
            if current != ProposalState.QUEUED:
                raise ProposalLifecycleError(
                    f"CollectorDAO:: proposal #{proposal_id} can only be executed if "
                    f"it is QUEUED (state={current.name})"
                )
            now = self.engine.clock.timestamp
            if now < proposal.eta:
                raise TimelockNotReadyError(
                    f"CollectorDAO:: proposal #{proposal_id} is not executable before "
                    f"eta {proposal.eta} (now={now}, remaining={proposal.eta - now}s)"
                )

            if isinstance(self.dispatcher, RecordingDispatcher):
                self.dispatcher.current_proposal = proposal_id
                self.dispatcher.current_timestamp = now

            self._executing.add(proposal_id)
            try:
                results = [
                    self._dispatch(proposal_id, index, action)
                    for index, action in enumerate(proposal.actions)
                ]
            finally:
                self._executing.discard(proposal_id)

            proposal.executed = True
            self._execution_log.append({
                "proposalId": proposal_id,
                "actions": [a.to_dict() for a in proposal.actions],
                "executedAt": now,
            })
            self.engine.events.emit(ProposalExecuted(proposal_id=proposal_id))
            logger.info(f"Proposal #{proposal_id} EXECUTED ({len(results)} action(s))")
            return results

    def _dispatch(self, proposal_id: int, index: int, action: Action) -> Any:
        try:
            return self.dispatcher.invoke(action.target, action.value, action.payload)
        except Exception as e:
            logger.warning(
                f"Proposal #{proposal_id}: action {index} → {action.target} failed: {e}"
            )
            raise ExecutionFailedError(
                f"CollectorDAO:: transaction execution reverted "
                f"(proposal #{proposal_id}, action {index}): {e}"
            ) from e

    # ── Cancel ────────────────────────────────────────────────────────

    def cancel(self, caller: str, proposal_id: int) -> None:
        """Cancel a proposal. Only its proposer or a guardian may do so."""
        with self.engine.lock:
            caller = normalize_address(caller)
            proposal = self.engine._record(proposal_id)
            current = self.engine.state(proposal_id)
            if current in (ProposalState.EXECUTED, ProposalState.CANCELED):
                raise ProposalLifecycleError(
                    f"CollectorDAO:: cannot cancel proposal #{proposal_id} "
                    f"(state={current.name})"
                )
            if caller != proposal.proposer and caller not in self.guardians:
                raise UnauthorizedError(
                    f"CollectorDAO:: {caller} is neither the proposer nor a guardian"
                )

            proposal.canceled = True
            self.engine.events.emit(ProposalCanceled(proposal_id=proposal_id, canceled_by=caller))
            logger.info(f"Proposal #{proposal_id} CANCELED by {caller} (was {current.name})")

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def execution_log(self) -> List[Dict[str, Any]]:
        return list(self._execution_log)

    def __repr__(self) -> str:
        return (
            f"<GovernanceExecutor delay={self.timelock_delay}s "
            f"guardians={len(self.guardians)} executed={len(self._execution_log)}>"
        )
