#!/usr/bin/env python3
"""
CollectorDAO CLI

Command-line interface for driving a CollectorDAO governance state file.

Usage:
    collectordao init [--timestamp TS]
    collectordao join <address> [--wei WEI | --ether ETH]
    collectordao members
    collectordao propose <proposer> --action TARGET:VALUE:SIGNATURE:CALLDATA [...] [--description TEXT]
    collectordao vote <voter> <proposal_id> (for | against)
    collectordao state <proposal_id>
    collectordao show <proposal_id>
    collectordao mine [--blocks N] [--seconds S]
    collectordao queue <proposal_id>
    collectordao execute <proposal_id>
    collectordao cancel <caller> <proposal_id>
"""

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Tuple

import click
from eth_utils import to_wei

from .. import __version__
from ..clock import ManualClock
from ..config import DAOConfig, load_config
from ..exceptions import CollectorDAOException
from ..governance import GovernanceEngine, GovernanceExecutor, RecordingDispatcher
from ..logger import configure_logging
from ..storage import load_engine, save_engine


class DAOContext:
    """Config and state path shared by every command."""

    def __init__(self, config: DAOConfig, state_path: Path):
        self.config = config
        self.state_path = state_path

    def load(self) -> GovernanceEngine:
        try:
            return load_engine(self.state_path, self.config.governance)
        except CollectorDAOException as e:
            raise click.ClickException(f"{e} (run `collectordao init` first?)")

    def save(self, engine: GovernanceEngine) -> None:
        try:
            save_engine(engine, self.state_path)
        except CollectorDAOException as e:
            raise click.ClickException(str(e))


pass_dao = click.make_pass_decorator(DAOContext)


def parse_action(raw: str) -> Tuple[str, int, str, str]:
    """Split TARGET:VALUE:SIGNATURE:CALLDATA; trailing parts may be omitted."""
    parts = raw.split(":", 3)
    while len(parts) < 4:
        parts.append("")
    target, value, signature, calldata = parts
    try:
        value_int = int(value) if value else 0
    except ValueError:
        raise click.BadParameter(f"Action value must be an integer (wei): {value!r}")
    return target, value_int, signature, calldata or "0x"


@click.group()
@click.version_option(version=__version__, prog_name="collectordao")
@click.option("--config", "-c", "config_path", type=click.Path(), default=None,
              help="Path to collectordao.toml")
@click.option("--state", "-s", "state_path", type=click.Path(), default=None,
              help="State file (default: [storage] state_file)")
@click.pass_context
def cli(ctx, config_path: Optional[str], state_path: Optional[str]):
    """CollectorDAO Command Line Interface

    Join the DAO, submit proposals, vote and drive proposals through
    their lifecycle against a local state file.
    """
    try:
        config = load_config(config_path)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))

    configure_logging(
        log_level=config.logging.level,
        console_output=config.logging.console,
        file_output=bool(config.logging.file),
        log_file=Path(config.logging.file) if config.logging.file else None,
    )
    ctx.obj = DAOContext(config, Path(state_path or config.storage.state_file))


@cli.command("init")
@click.option("--timestamp", type=int, default=None, help="Initial clock timestamp (default: now)")
@click.option("--force", is_flag=True, help="Overwrite an existing state file")
@pass_dao
def init_cmd(dao: DAOContext, timestamp: Optional[int], force: bool):
    """Create a fresh state file."""
    if dao.state_path.exists() and not force:
        raise click.ClickException(f"{dao.state_path} already exists (use --force to overwrite)")
    clock = ManualClock(timestamp=timestamp, block_time=dao.config.governance.block_time)
    engine = GovernanceEngine(clock, config=dao.config.governance)
    dao.save(engine)
    click.echo(click.style(f"✓ Initialized {dao.state_path}", fg="green"))


@cli.command("join")
@click.argument("address")
@click.option("--wei", type=int, default=None, help="Payment in wei")
@click.option("--ether", type=str, default=None, help="Payment in ether")
@pass_dao
def join_cmd(dao: DAOContext, address: str, wei: Optional[int], ether: Optional[str]):
    """Pay the membership stake for ADDRESS."""
    engine = dao.load()
    if wei is not None and ether is not None:
        raise click.BadParameter("Use either --wei or --ether, not both")
    if ether is not None:
        try:
            amount = to_wei(Decimal(ether), "ether")
        except (InvalidOperation, ValueError):
            raise click.BadParameter(f"Invalid ether amount: {ether!r}")
    elif wei is not None:
        amount = wei
    else:
        amount = engine.membership_stake

    try:
        engine.join(address, amount)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    click.echo(f"Member added. Total members: {engine.total_members}")


@cli.command("members")
@pass_dao
def members_cmd(dao: DAOContext):
    """List members."""
    engine = dao.load()
    for member in engine.members():
        click.echo(member)
    click.echo(f"Total: {engine.total_members}  Quorum: {engine.quorum_votes()}")


@cli.command("propose")
@click.argument("proposer")
@click.option("--action", "-a", "actions", multiple=True,
              help="TARGET:VALUE:SIGNATURE:CALLDATA_HEX (repeatable)")
@click.option("--description", "-d", default="", help="Proposal description")
@pass_dao
def propose_cmd(dao: DAOContext, proposer: str, actions: Tuple[str, ...], description: str):
    """Submit a proposal on behalf of PROPOSER."""
    engine = dao.load()
    parsed = [parse_action(a) for a in actions]
    try:
        proposal_id = engine.propose(
            proposer,
            [p[0] for p in parsed],
            [p[1] for p in parsed],
            [p[2] for p in parsed],
            [p[3] for p in parsed],
            description,
        )
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    proposal = engine.proposal(proposal_id)
    click.echo(
        f"Proposal #{proposal_id} created "
        f"(voting blocks {proposal.start_block + 1}..{proposal.end_block})"
    )


@cli.command("vote")
@click.argument("voter")
@click.argument("proposal_id", type=int)
@click.argument("support", type=click.Choice(["for", "against"], case_sensitive=False))
@pass_dao
def vote_cmd(dao: DAOContext, voter: str, proposal_id: int, support: str):
    """Cast VOTER's vote (for | against) on PROPOSAL_ID."""
    engine = dao.load()
    try:
        receipt = engine.cast_vote(voter, proposal_id, support.lower() == "for")
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    click.echo(f"Vote recorded: {receipt.support.name} on proposal #{proposal_id}")


@cli.command("state")
@click.argument("proposal_id", type=int)
@pass_dao
def state_cmd(dao: DAOContext, proposal_id: int):
    """Print the current state of PROPOSAL_ID."""
    engine = dao.load()
    try:
        click.echo(engine.state(proposal_id).name)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))


@cli.command("show")
@click.argument("proposal_id", type=int)
@pass_dao
def show_cmd(dao: DAOContext, proposal_id: int):
    """Print PROPOSAL_ID as JSON."""
    engine = dao.load()
    try:
        data = engine.proposal(proposal_id).to_dict()
        data["state"] = engine.state(proposal_id).name
        data["quorumVotes"] = engine.quorum_votes()
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(data, indent=2))


@cli.command("mine")
@click.option("--blocks", "-n", type=int, default=1, help="Blocks to advance")
@click.option("--seconds", type=int, default=None, help="Seconds to advance (default: blocks × block time)")
@pass_dao
def mine_cmd(dao: DAOContext, blocks: int, seconds: Optional[int]):
    """Advance the simulated clock."""
    engine = dao.load()
    try:
        engine.clock.mine(blocks, seconds)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    click.echo(f"Block {engine.clock.block_number} @ {engine.clock.timestamp}")


@cli.command("queue")
@click.argument("proposal_id", type=int)
@pass_dao
def queue_cmd(dao: DAOContext, proposal_id: int):
    """Queue a Succeeded proposal."""
    engine = dao.load()
    try:
        eta = GovernanceExecutor(engine).queue(proposal_id)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    click.echo(f"Proposal #{proposal_id} queued, eta {eta}")


@cli.command("execute")
@click.argument("proposal_id", type=int)
@pass_dao
def execute_cmd(dao: DAOContext, proposal_id: int):
    """Execute a Queued proposal (calls are recorded, not sent)."""
    engine = dao.load()
    dispatcher = RecordingDispatcher()
    try:
        GovernanceExecutor(engine, dispatcher).execute(proposal_id)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    for call in dispatcher.calls:
        click.echo(f"  → {call.target} value={call.value} payload=0x{call.payload.hex()}")
    click.echo(click.style(f"✓ Proposal #{proposal_id} executed", fg="green"))


@cli.command("cancel")
@click.argument("caller")
@click.argument("proposal_id", type=int)
@pass_dao
def cancel_cmd(dao: DAOContext, caller: str, proposal_id: int):
    """Cancel PROPOSAL_ID as CALLER (proposer or guardian)."""
    engine = dao.load()
    try:
        GovernanceExecutor(engine).cancel(caller, proposal_id)
    except CollectorDAOException as e:
        raise click.ClickException(str(e))
    dao.save(engine)
    click.echo(f"Proposal #{proposal_id} canceled")


def main():
    cli()


if __name__ == "__main__":
    main()
