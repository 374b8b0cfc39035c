"""Tests for the stake-ledger command line."""
import pytest
from click.testing import CliRunner
from stakeledger.main import cli


@pytest.fixture
def run(tmp_path, monkeypatch):
    """Invoke the CLI against a fresh data directory."""
    monkeypatch.delenv("STAKE_LEDGER_DATA_DIR", raising=False)
    runner = CliRunner()
    config_path = tmp_path / "config.yaml"

    def invoke(*args):
        return runner.invoke(cli, ["--config", str(config_path),
                                   "--data-dir", str(tmp_path / "data"), *args])
    return invoke


@pytest.fixture
def names(admin, token, alice):
    return str(admin), str(token), str(alice)


def test_full_cycle(run, names):
    admin, token, alice = names
    assert run("create-token", token, admin).exit_code == 0
    assert run("fund", alice, token, "500", "--authority", admin).exit_code == 0
    assert run("init", admin, token).exit_code == 0

    result = run("stake", admin, token, alice, "500", "20", "--slot", "100")
    assert result.exit_code == 0
    assert "Reward:        1000" in result.output
    assert "Pool total:    500" in result.output

    result = run("user", admin, token, alice, "--slot", "110")
    assert result.exit_code == 0
    assert "State:         locked" in result.output

    assert run("unstake", admin, token, alice, "500", "--slot", "110").exit_code == 1
    assert run("unstake", admin, token, alice, "500", "--slot", "121").exit_code == 0

    result = run("balance", alice, token)
    assert "Balance: 1500" in result.output
    result = run("pool", admin, token)
    assert "Total staked: 0" in result.output


def test_claim(run, names):
    admin, token, alice = names
    run("create-token", token, admin)
    run("fund", alice, token, "100", "--authority", admin)
    run("init", admin, token)
    run("stake", admin, token, alice, "100", "5", "--slot", "10")

    result = run("claim", admin, token, alice, "--slot", "15")
    assert result.exit_code == 0
    assert "Claimed reward of 50" in result.output
    assert run("claim", admin, token, alice, "--slot", "16").exit_code == 1


def test_init_twice_fails(run, names):
    admin, token, _ = names
    assert run("init", admin, token).exit_code == 0
    assert run("init", admin, token).exit_code == 1


def test_stake_without_funds_fails(run, names):
    admin, token, alice = names
    run("create-token", token, admin)
    run("init", admin, token)
    assert run("stake", admin, token, alice, "10", "1", "--slot", "1").exit_code == 1
    assert "Total staked: 0" in run("pool", admin, token).output


def test_rejects_bad_identity(run, names):
    _, token, _ = names
    result = run("init", "not-a-key", token)
    assert result.exit_code == 2
    assert "identity" in result.output.lower() or "base58" in result.output.lower()


def test_rejects_zero_amount(run, names):
    admin, token, alice = names
    assert run("stake", admin, token, alice, "0", "1").exit_code == 2


def test_remote_requires_rpc_url(run, names):
    admin, token, _ = names
    result = run("--remote", "pool", admin, token)
    assert result.exit_code == 1
