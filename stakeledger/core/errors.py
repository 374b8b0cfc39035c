"""Error types raised by the staking program."""
from typing import Optional


class StakingError(Exception):
    """Base class for every recoverable staking failure."""

    code = "staking_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class LockNotExpired(StakingError):
    """Principal or reward touched before the lock window elapsed."""
    code = "lock_not_expired"


class InsufficientStake(StakingError):
    code = "insufficient_stake"


class NoRewardAvailable(StakingError):
    code = "no_reward_available"


class InvalidAmount(StakingError):
    code = "invalid_amount"


class ArithmeticOverflow(StakingError):
    """A u64 addition, subtraction or product left the representable range."""
    code = "arithmetic_overflow"


class LedgerError(StakingError):
    """The token ledger refused or failed a mint or transfer."""
    code = "ledger_error"


class PoolAlreadyInitialized(StakingError):
    code = "pool_already_initialized"


class PoolNotFound(StakingError):
    code = "pool_not_found"


class RecordNotFound(StakingError):
    code = "record_not_found"
