"""Pool and user records, u64 arithmetic and their fixed-width layouts."""
import hashlib
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, ClassVar, NamedTuple, Union

import base58
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

from .errors import ArithmeticOverflow

U64_MAX = 2**64 - 1
IDENTITY_LEN = 32
REWARD_DIVISOR = 10

U64 = Annotated[StrictInt, Field(ge=0, le=U64_MAX)]


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows u64")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"{a} - {b} underflows u64")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > U64_MAX:
        raise ArithmeticOverflow(f"{a} * {b} overflows u64")
    return result


def compute_reward(amount: int, lock_duration: int) -> int:
    """Linear reward for a deposit, truncated toward zero."""
    return checked_mul(amount, lock_duration) // REWARD_DIVISOR


@dataclass(frozen=True)
class Identity:
    """A 32-byte public key, shown as base58."""
    key: bytes

    def __post_init__(self):
        if not isinstance(self.key, bytes) or len(self.key) != IDENTITY_LEN:
            raise ValueError(f"identity must be {IDENTITY_LEN} bytes")

    @classmethod
    def parse(cls, value: Union["Identity", bytes, str]) -> "Identity":
        if isinstance(value, Identity):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        if isinstance(value, str):
            try:
                raw = base58.b58decode(value)
            except ValueError as e:
                raise ValueError(f"invalid base58 identity {value!r}: {e}") from e
            return cls(raw)
        raise ValueError(f"cannot parse identity from {type(value).__name__}")

    def __str__(self) -> str:
        return base58.b58encode(self.key).decode()

    def __repr__(self) -> str:
        return f"Identity({self})"


class PoolKey(NamedTuple):
    admin: Identity
    token: Identity

    def __str__(self) -> str:
        return f"{self.admin}-{self.token}"


class TokenAccount(NamedTuple):
    """A token balance held by ``owner`` for the ``token`` mint."""
    owner: Identity
    token: Identity

    def __str__(self) -> str:
        return f"{self.owner}:{self.token}"


class StakeState(str, Enum):
    UNSTAKED = "unstaked"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


def _discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


class PoolRecord(BaseModel):
    """Aggregate bookkeeping for one (admin, token) pool."""
    model_config = ConfigDict(frozen=True)

    admin: Identity
    token: Identity
    total_staked: U64 = 0

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<32s32sQ")
    DISCRIMINATOR: ClassVar[bytes] = _discriminator("PoolInfo")

    @field_validator("admin", "token", mode="before")
    @classmethod
    def _parse_identity(cls, value):
        return Identity.parse(value)

    @property
    def key(self) -> PoolKey:
        return PoolKey(self.admin, self.token)

    def to_bytes(self) -> bytes:
        return self.LAYOUT.pack(self.admin.key, self.token.key, self.total_staked)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PoolRecord":
        if len(data) != cls.LAYOUT.size:
            raise ValueError(f"pool record must be {cls.LAYOUT.size} bytes, got {len(data)}")
        admin, token, total_staked = cls.LAYOUT.unpack(data)
        return cls(admin=admin, token=token, total_staked=total_staked)

    def to_account_data(self) -> bytes:
        return self.DISCRIMINATOR + self.to_bytes()

    @classmethod
    def from_account_data(cls, data: bytes) -> "PoolRecord":
        if data[:8] != cls.DISCRIMINATOR:
            raise ValueError("account data is not a pool record")
        return cls.from_bytes(data[8:])


class UserRecord(BaseModel):
    """A participant's stake, lock window and unpaid reward."""
    model_config = ConfigDict(frozen=True)

    amount: U64 = 0
    deposit_time: U64 = 0
    lock_duration: U64 = 0
    reward: U64 = 0

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<QQQQ")
    DISCRIMINATOR: ClassVar[bytes] = _discriminator("UserInfo")

    def lock_expired(self, now: int) -> bool:
        """True once ``now - deposit_time >= lock_duration``.

        A clock reading earlier than the deposit counts as zero elapsed time.
        """
        elapsed = now - self.deposit_time if now >= self.deposit_time else 0
        return elapsed >= self.lock_duration

    def state(self, now: int) -> StakeState:
        if self.amount == 0:
            return StakeState.UNSTAKED
        if self.lock_expired(now):
            return StakeState.UNLOCKED
        return StakeState.LOCKED

    def to_bytes(self) -> bytes:
        return self.LAYOUT.pack(self.amount, self.deposit_time, self.lock_duration, self.reward)

    @classmethod
    def from_bytes(cls, data: bytes) -> "UserRecord":
        if len(data) != cls.LAYOUT.size:
            raise ValueError(f"user record must be {cls.LAYOUT.size} bytes, got {len(data)}")
        amount, deposit_time, lock_duration, reward = cls.LAYOUT.unpack(data)
        return cls(amount=amount, deposit_time=deposit_time,
                   lock_duration=lock_duration, reward=reward)

    def to_account_data(self) -> bytes:
        return self.DISCRIMINATOR + self.to_bytes()

    @classmethod
    def from_account_data(cls, data: bytes) -> "UserRecord":
        if data[:8] != cls.DISCRIMINATOR:
            raise ValueError("account data is not a user record")
        return cls.from_bytes(data[8:])
