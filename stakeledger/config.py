"""Configuration and logging setup."""
import os
import platform
import sys
from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError

NETWORKS = ("localnet", "devnet", "mainnet")


def get_config_dir() -> Path:
    """Get platform-specific config directory."""
    if os.name == 'nt':  # Windows
        return Path(os.getenv('APPDATA', Path.home())) / 'stake-ledger'
    elif platform.system() == 'Darwin':  # macOS
        return Path.home() / 'Library' / 'Application Support' / 'stake-ledger'
    else:  # Linux and others
        return Path.home() / '.config' / 'stake-ledger'


class LedgerConfig(BaseModel):
    """Stake ledger configuration.

    ``rpc_url`` names a token ledger service speaking the JSON-RPC methods
    used by ``RpcTokenLedger`` (``mint_to``, ``transfer``, ``get_balance``).
    There is no default; the remote ledger is unusable until one is set.
    """
    network: str = "localnet"
    rpc_url: Optional[str] = None
    data_dir: Optional[Path] = None
    request_timeout: float = 10.0
    log_level: str = "INFO"

    def __init__(self, **data):
        super().__init__(**data)
        if self.network not in NETWORKS:
            raise ValueError(f"unknown network {self.network!r}")
        env_dir = os.getenv("STAKE_LEDGER_DATA_DIR")
        if env_dir:
            self.data_dir = Path(env_dir)
        elif self.data_dir is None:
            self.data_dir = get_config_dir() / self.network
        env_level = os.getenv("STAKE_LEDGER_LOG_LEVEL")
        if env_level:
            self.log_level = env_level.upper()


def load_config(path: Optional[Union[str, Path]] = None) -> LedgerConfig:
    """Load configuration from a YAML file, falling back to defaults."""
    path = Path(path) if path else get_config_dir() / 'config.yaml'
    if not path.exists():
        return LedgerConfig()
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return LedgerConfig(**data)
    except (yaml.YAMLError, ValidationError, ValueError, TypeError) as e:
        logger.error(f"Failed to load config {path}: {e}")
        return LedgerConfig()


def save_config(config: LedgerConfig, path: Optional[Union[str, Path]] = None) -> Path:
    """Save configuration to a YAML file."""
    path = Path(path) if path else get_config_dir() / 'config.yaml'
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump()
    data["data_dir"] = str(data["data_dir"])
    with open(path, 'w') as f:
        yaml.safe_dump(data, f, default_flow_style=False)
    return path


def configure_logging(level: Optional[str] = None) -> None:
    """Send loguru output to stderr at ``level`` (or STAKE_LEDGER_LOG_LEVEL)."""
    level = (level or os.getenv("STAKE_LEDGER_LOG_LEVEL") or "INFO").upper()
    logger.remove()
    logger.add(sys.stderr, level=level)
