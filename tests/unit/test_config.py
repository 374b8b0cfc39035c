"""Unit tests for configuration loading."""
import pytest
from pathlib import Path
from stakeledger.config import (
    LedgerConfig,
    configure_logging,
    get_config_dir,
    load_config,
    save_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("STAKE_LEDGER_DATA_DIR", raising=False)
    monkeypatch.delenv("STAKE_LEDGER_LOG_LEVEL", raising=False)


def test_defaults():
    config = LedgerConfig()
    assert config.network == "localnet"
    assert config.rpc_url is None
    assert config.data_dir == get_config_dir() / "localnet"
    assert config.log_level == "INFO"


def test_rpc_url_has_no_default():
    assert LedgerConfig(network="devnet").rpc_url is None
    assert LedgerConfig(network="devnet", rpc_url="http://x").rpc_url == "http://x"


def test_unknown_network():
    with pytest.raises(ValueError):
        LedgerConfig(network="moon")


def test_env_overrides(monkeypatch, tmp_path, env_setup):
    monkeypatch.setenv("STAKE_LEDGER_DATA_DIR", str(tmp_path))
    config = LedgerConfig(data_dir="/elsewhere")
    assert config.data_dir == tmp_path
    assert config.log_level == "DEBUG"


def test_load_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("network: devnet\nrequest_timeout: 2.5\ndata_dir: /var/lib/stake\n")
    config = load_config(path)
    assert config.network == "devnet"
    assert config.request_timeout == 2.5
    assert config.data_dir == Path("/var/lib/stake")


def test_load_missing_or_invalid(tmp_path):
    assert load_config(tmp_path / "missing.yaml") == LedgerConfig()
    bad = tmp_path / "bad.yaml"
    bad.write_text("network: [unclosed\n")
    assert load_config(bad).network == "localnet"
    wrong = tmp_path / "wrong.yaml"
    wrong.write_text("network: moon\n")
    assert load_config(wrong).network == "localnet"


def test_save_and_reload(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config = LedgerConfig(network="mainnet", data_dir=tmp_path / "data", log_level="WARNING")
    save_config(config, path)
    assert load_config(path) == config


def test_configure_logging_reads_env(env_setup, capsys):
    from loguru import logger
    configure_logging()
    logger.debug("debug output enabled")
    assert "debug output enabled" in capsys.readouterr().err
