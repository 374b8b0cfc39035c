"""Test configuration and fixtures for Stake Ledger."""
import os
import sys
import pytest
from loguru import logger
from unittest.mock import MagicMock
from stakeledger.core.clock import ManualClock
from stakeledger.core.ledger import InMemoryTokenLedger, TokenLedger
from stakeledger.core.program import StakingProgram
from stakeledger.core.records import Identity, TokenAccount


def make_identity(seed: int) -> Identity:
    return Identity(bytes([seed]) * 32)


@pytest.fixture
def identity_factory():
    """Build deterministic identities from a one-byte seed."""
    return make_identity


@pytest.fixture
def admin():
    return make_identity(1)


@pytest.fixture
def token():
    return make_identity(2)


@pytest.fixture
def alice():
    return make_identity(3)


@pytest.fixture
def bob():
    return make_identity(4)


@pytest.fixture
def clock():
    """A clock parked at slot 100."""
    return ManualClock(100)


@pytest.fixture
def ledger(admin, token, alice, bob):
    """A local ledger where alice and bob each hold 10_000 tokens."""
    ledger = InMemoryTokenLedger()
    ledger.create_mint(token, admin)
    ledger.mint(10_000, admin, TokenAccount(alice, token))
    ledger.mint(10_000, admin, TokenAccount(bob, token))
    return ledger


@pytest.fixture
def program(ledger, clock):
    return StakingProgram(ledger, clock)


@pytest.fixture
def pool(program, admin, token):
    """Key of an initialized pool."""
    return program.initialize(admin, token).key


@pytest.fixture
def mock_ledger():
    """A ledger whose calls all succeed without moving anything."""
    return MagicMock(spec=TokenLedger)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()
    logger.add(lambda message: sys.stderr.write(message), level="INFO")


@pytest.fixture
def env_setup():
    """Set up environment variables for testing."""
    os.environ["STAKE_LEDGER_LOG_LEVEL"] = "DEBUG"
    yield
    del os.environ["STAKE_LEDGER_LOG_LEVEL"]
