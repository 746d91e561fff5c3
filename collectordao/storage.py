"""
State snapshots

Persists the governance state (proposal count, proposals by id, receipts by
(proposal id, voter), membership flags, member count) together with the
simulated clock as a single JSON document.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .clock import ManualClock
from .config.loader import GovernanceConfig
from .exceptions import CollectorDAOException, StorageError
from .governance.governor import GovernanceEngine
from .governance.membership import MembershipRegistry
from .governance.proposals import ProposalStore
from .governance.voting import ReceiptLedger, Support
from .logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1

PathLike = Union[str, Path]


def engine_to_snapshot(engine: GovernanceEngine) -> Dict[str, Any]:
    if not isinstance(engine.clock, ManualClock):
        raise StorageError("Only engines driven by a ManualClock can be snapshotted")
    with engine.lock:
        return {
            "version": SNAPSHOT_VERSION,
            "clock": engine.clock.to_dict(),
            "membership": engine._registry.to_dict(),
            **engine._proposals.to_dict(),
            **engine._receipts.to_dict(),
        }


def _check_tallies(
    registry: MembershipRegistry,
    store: ProposalStore,
    ledger: ReceiptLedger,
) -> None:
    """Every counted vote has exactly one receipt from a member, and vice versa."""
    counted: Dict[int, Dict[Support, int]] = {}
    for pid, voter, receipt in ledger.entries():
        if not isinstance(pid, int) or isinstance(pid, bool) or not 1 <= pid <= store.count:
            raise StorageError(f"Corrupt snapshot: receipt for unallocated proposal {pid!r}")
        if not registry.is_member(voter):
            raise StorageError(f"Corrupt snapshot: receipt from non-member {voter}")
        per_support = counted.setdefault(pid, {})
        per_support[receipt.support] = per_support.get(receipt.support, 0) + 1

    for proposal in store:
        tally = counted.get(proposal.id, {})
        expected = (
            tally.get(Support.FOR, 0),
            tally.get(Support.AGAINST, 0),
            tally.get(Support.ABSTAIN, 0),
        )
        stored = (proposal.for_votes, proposal.against_votes, proposal.abstain_votes)
        if stored != expected or proposal.abstain_votes != 0:
            raise StorageError(
                f"Corrupt snapshot: proposal #{proposal.id} tallies "
                f"for/against/abstain={stored} do not match its receipts {expected}"
            )


def engine_from_snapshot(
    data: Dict[str, Any],
    config: Optional[GovernanceConfig] = None,
) -> GovernanceEngine:
    if data.get("version") != SNAPSHOT_VERSION:
        raise StorageError(f"Unsupported snapshot version: {data.get('version')!r}")
    try:
        clock = ManualClock.from_dict(data["clock"])
        registry = MembershipRegistry.from_dict(data["membership"])
        store = ProposalStore.from_dict(data)
        ledger = ReceiptLedger.from_dict(data)
    except (KeyError, ValueError, TypeError, CollectorDAOException) as e:
        raise StorageError(f"Corrupt snapshot: {e}") from e
    _check_tallies(registry, store, ledger)
    return GovernanceEngine(
        clock=clock,
        config=config,
        registry=registry,
        store=store,
        ledger=ledger,
    )


def save_engine(engine: GovernanceEngine, path: PathLike) -> Path:
    """Atomically write the engine snapshot to *path*."""
    path = Path(path)
    snapshot = engine_to_snapshot(engine)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, sort_keys=True)
        os.replace(tmp_name, path)
    except OSError as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StorageError(f"Could not write state to {path}: {e}") from e

    logger.debug(f"State saved to {path} ({snapshot['proposalCount']} proposals)")
    return path


def load_engine(path: PathLike, config: Optional[GovernanceConfig] = None) -> GovernanceEngine:
    """Rebuild an engine from a snapshot written by save_engine."""
    path = Path(path)
    if not path.exists():
        raise StorageError(f"State file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Could not read state from {path}: {e}") from e
    if not isinstance(data, dict):
        raise StorageError(f"State file {path} does not contain a snapshot object")
    return engine_from_snapshot(data, config)
