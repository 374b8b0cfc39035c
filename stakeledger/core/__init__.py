"""Staking program core."""
from .clock import Clock, ManualClock, SystemClock
from .errors import (
    ArithmeticOverflow,
    InsufficientStake,
    InvalidAmount,
    LedgerError,
    LockNotExpired,
    NoRewardAvailable,
    PoolAlreadyInitialized,
    PoolNotFound,
    RecordNotFound,
    StakingError,
)
from .ledger import InMemoryTokenLedger, RpcTokenLedger, TokenLedger
from .program import StakingProgram
from .records import (
    Identity,
    PoolKey,
    PoolRecord,
    StakeState,
    TokenAccount,
    UserRecord,
    compute_reward,
)
from .store import FileRecordStore, MemoryRecordStore, RecordStore

__all__ = [
    "ArithmeticOverflow",
    "Clock",
    "FileRecordStore",
    "Identity",
    "InMemoryTokenLedger",
    "InsufficientStake",
    "InvalidAmount",
    "LedgerError",
    "LockNotExpired",
    "ManualClock",
    "MemoryRecordStore",
    "NoRewardAvailable",
    "PoolAlreadyInitialized",
    "PoolKey",
    "PoolNotFound",
    "PoolRecord",
    "RecordNotFound",
    "RecordStore",
    "RpcTokenLedger",
    "StakeState",
    "StakingError",
    "StakingProgram",
    "SystemClock",
    "TokenAccount",
    "TokenLedger",
    "UserRecord",
    "compute_reward",
]
