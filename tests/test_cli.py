"""
CollectorDAO CLI Test Suite

Drives a full proposal lifecycle through the click commands against a
state file in a temporary directory.
"""

import json

import pytest
from click.testing import CliRunner
from eth_utils import to_checksum_address

from collectordao.cli import cli
from collectordao.cli.dao import parse_action

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
EVE = "0x" + "e5" * 20
TARGET = "0x" + "f6" * 20

TRANSFER_ACTION = f"{TARGET}:0:transfer(address,uint256):0x" + "00" * 64


@pytest.fixture
def dao(tmp_path, monkeypatch):
    """Invoke the CLI with an isolated config and state file."""
    monkeypatch.delenv("COLLECTORDAO_CONFIG", raising=False)
    monkeypatch.delenv("COLLECTORDAO_STATE_FILE", raising=False)
    config = tmp_path / "collectordao.toml"
    config.write_text(
        "[governance]\n"
        "voting_period = 10\n"
        "timelock_delay = 100\n"
        f'guardians = ["{EVE}"]\n'
        "[logging]\n"
        "console = false\n"
    )
    state = tmp_path / "state.json"
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["-c", str(config), "-s", str(state), *args])

    invoke.state = state
    return invoke


def ok(result):
    assert result.exit_code == 0, result.output
    return result.output


class TestCli:

    def test_init_creates_state(self, dao):
        ok(dao("init", "--timestamp", "1000"))
        assert json.loads(dao.state.read_text())["clock"]["timestamp"] == 1000

    def test_init_refuses_overwrite(self, dao):
        ok(dao("init"))
        result = dao("init")
        assert result.exit_code != 0
        assert "already exists" in result.output
        ok(dao("init", "--force"))

    def test_commands_require_init(self, dao):
        result = dao("members")
        assert result.exit_code != 0
        assert "init" in result.output

    def test_join_default_stake(self, dao):
        ok(dao("init"))
        assert "Total members: 1" in ok(dao("join", ALICE))
        assert to_checksum_address(ALICE) in ok(dao("members"))

    def test_join_ether_amount(self, dao):
        ok(dao("init"))
        ok(dao("join", ALICE, "--ether", "1"))
        result = dao("join", BOB, "--ether", "1.1")
        assert result.exit_code != 0
        assert "insufficient funds" in result.output

    def test_join_twice_fails(self, dao):
        ok(dao("init"))
        ok(dao("join", ALICE))
        result = dao("join", ALICE)
        assert result.exit_code != 0
        assert "already a member" in result.output

    def test_full_lifecycle(self, dao):
        ok(dao("init", "--timestamp", "1000"))
        ok(dao("join", ALICE))
        ok(dao("join", BOB))
        assert "Proposal #1 created" in ok(
            dao("propose", ALICE, "-a", TRANSFER_ACTION, "-d", "Buy the punk")
        )
        assert ok(dao("state", "1")).strip() == "PENDING"

        ok(dao("mine", "-n", "2"))
        assert ok(dao("state", "1")).strip() == "ACTIVE"
        assert "FOR" in ok(dao("vote", ALICE, "1", "for"))
        ok(dao("vote", BOB, "1", "FOR"))

        ok(dao("mine", "-n", "10"))
        assert ok(dao("state", "1")).strip() == "SUCCEEDED"

        assert "queued" in ok(dao("queue", "1"))
        result = dao("execute", "1")
        assert result.exit_code != 0
        assert "eta" in result.output

        ok(dao("mine", "-n", "0", "--seconds", "100"))
        output = ok(dao("execute", "1"))
        assert "0xa9059cbb" in output
        assert "executed" in output
        assert ok(dao("state", "1")).strip() == "EXECUTED"

    def test_show_outputs_json(self, dao):
        ok(dao("init"))
        ok(dao("join", ALICE))
        ok(dao("propose", ALICE, "-a", TRANSFER_ACTION, "-d", "Buy"))
        data = json.loads(ok(dao("show", "1")))
        assert data["id"] == 1
        assert data["state"] == "PENDING"
        assert data["quorumVotes"] == 0
        assert data["description"] == "Buy"

    def test_vote_rejected_for_non_member(self, dao):
        ok(dao("init"))
        ok(dao("propose", ALICE, "-a", TRANSFER_ACTION))
        ok(dao("mine", "-n", "2"))
        result = dao("vote", EVE, "1", "against")
        assert result.exit_code != 0
        assert "not a member" in result.output

    def test_propose_without_actions_fails(self, dao):
        ok(dao("init"))
        result = dao("propose", ALICE)
        assert result.exit_code != 0
        assert "must provide actions" in result.output

    def test_unknown_proposal(self, dao):
        ok(dao("init"))
        result = dao("state", "1")
        assert result.exit_code != 0
        assert "invalid proposal id" in result.output

    def test_guardian_cancel(self, dao):
        ok(dao("init"))
        ok(dao("propose", ALICE, "-a", TRANSFER_ACTION))
        result = dao("cancel", BOB, "1")
        assert result.exit_code != 0
        ok(dao("cancel", EVE, "1"))
        assert ok(dao("state", "1")).strip() == "CANCELED"


class TestParseAction:

    def test_full(self):
        assert parse_action(f"{TARGET}:5:f():0x01") == (TARGET, 5, "f()", "0x01")

    def test_target_only(self):
        assert parse_action(TARGET) == (TARGET, 0, "", "0x")

    def test_bad_value(self):
        import click

        with pytest.raises(click.BadParameter):
            parse_action(f"{TARGET}:lots")
