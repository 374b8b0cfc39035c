"""The staking state machine.

Every operation validates against the current records, performs its token
ledger calls, and only then commits new records. A failure at any step leaves
the records exactly as they were.
"""
import threading
from typing import Dict, Optional, Tuple, Union

from loguru import logger

from .clock import Clock
from .errors import (
    InsufficientStake,
    InvalidAmount,
    LedgerError,
    LockNotExpired,
    NoRewardAvailable,
    PoolAlreadyInitialized,
    PoolNotFound,
    RecordNotFound,
)
from .ledger import TokenLedger
from .records import (
    U64_MAX,
    Identity,
    PoolKey,
    PoolRecord,
    StakeState,
    TokenAccount,
    UserRecord,
    checked_add,
    checked_sub,
    compute_reward,
)
from .store import MemoryRecordStore, RecordStore

IdentityLike = Union[Identity, bytes, str]


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"amount must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount("amount must be greater than zero")
    if amount > U64_MAX:
        raise InvalidAmount("amount exceeds u64")


class StakingProgram:
    """Single-pool staking bookkeeping over an injected token ledger."""

    def __init__(self, ledger: TokenLedger, clock: Clock,
                 store: Optional[RecordStore] = None):
        self.ledger = ledger
        self.clock = clock
        self.store = store or MemoryRecordStore()
        self._registry_lock = threading.Lock()
        self._pool_locks: Dict[PoolKey, threading.Lock] = {}
        self._user_locks: Dict[Tuple[PoolKey, Identity], threading.Lock] = {}

    def _pool_lock(self, pool: PoolKey) -> threading.Lock:
        with self._registry_lock:
            return self._pool_locks.setdefault(pool, threading.Lock())

    def _user_lock(self, pool: PoolKey, user: Identity) -> threading.Lock:
        with self._registry_lock:
            return self._user_locks.setdefault((pool, user), threading.Lock())

    @staticmethod
    def pool_key(admin: IdentityLike, token: IdentityLike) -> PoolKey:
        return PoolKey(Identity.parse(admin), Identity.parse(token))

    def _require_pool(self, pool: PoolKey) -> PoolRecord:
        record = self.store.get_pool(pool)
        if record is None:
            raise PoolNotFound(f"no pool for admin {pool.admin} and token {pool.token}")
        return record

    def _require_user(self, pool: PoolKey, user: Identity) -> UserRecord:
        record = self.store.get_user(pool, user)
        if record is None:
            raise RecordNotFound(f"{user} has never staked in pool {pool}")
        return record

    @staticmethod
    def _require_unlocked(record: UserRecord, now: int) -> None:
        if not record.lock_expired(now):
            unlock_at = record.deposit_time + record.lock_duration
            raise LockNotExpired(f"stake is locked until slot {unlock_at} (now {now})")

    def _commit(self, pool: PoolKey, user: Identity, record: UserRecord,
                delta: int) -> PoolRecord:
        """Store ``record`` and apply ``delta`` to the pool total."""
        with self._pool_lock(pool), self.store.lock_pool(pool):
            current = self._require_pool(pool)
            if delta >= 0:
                total = checked_add(current.total_staked, delta)
            else:
                total = checked_sub(current.total_staked, -delta)
            updated = PoolRecord(admin=current.admin, token=current.token, total_staked=total)
            self.store.put_user(pool, user, record)
            self.store.put_pool(updated)
            return updated

    def initialize(self, admin: IdentityLike, token: IdentityLike) -> PoolRecord:
        logger.info("Instruction Initialize")
        pool = self.pool_key(admin, token)
        with self._pool_lock(pool), self.store.lock_pool(pool):
            if self.store.get_pool(pool) is not None:
                raise PoolAlreadyInitialized(f"pool {pool} already exists")
            record = PoolRecord(admin=pool.admin, token=pool.token, total_staked=0)
            self.store.put_pool(record)
        logger.info(f"Initialized pool {pool}")
        return record

    def stake(self, pool: PoolKey, user: IdentityLike, amount: int,
              lock_duration: int) -> Tuple[UserRecord, PoolRecord]:
        """Deposit ``amount`` locked for ``lock_duration`` slots.

        Any reward still owed from the previous deposit is minted first. The
        new reward is computed over the whole resulting stake.
        """
        logger.info("Instruction Stake")
        pool = self.pool_key(*pool)
        user = Identity.parse(user)
        _require_amount(amount)
        if (not isinstance(lock_duration, int) or isinstance(lock_duration, bool)
                or not 0 <= lock_duration <= U64_MAX):
            raise InvalidAmount("lock duration must be a u64")

        with self._user_lock(pool, user), self.store.lock_user(pool, user):
            pool_record = self._require_pool(pool)
            record = self.store.get_user(pool, user) or UserRecord()
            now = self.clock.now()
            if record.amount > 0:
                self._require_unlocked(record, now)

            new_amount = checked_add(record.amount, amount)
            updated = UserRecord(
                amount=new_amount,
                deposit_time=now,
                lock_duration=lock_duration,
                reward=compute_reward(new_amount, lock_duration),
            )
            checked_add(pool_record.total_staked, amount)  # pool total must fit before moving tokens

            wallet = TokenAccount(user, pool.token)
            custody = TokenAccount(pool.admin, pool.token)
            if record.reward > 0:
                self.ledger.mint(record.reward, pool.admin, wallet)
            try:
                self.ledger.transfer(amount, user, wallet, custody)
            except LedgerError:
                if record.reward > 0:
                    logger.warning(
                        f"Reward of {record.reward} was minted to {wallet} "
                        f"but the deposit transfer failed"
                    )
                raise

            pool_record = self._commit(pool, user, updated, amount)

        logger.info(f"{user} staked {amount} for {lock_duration} slots, reward {updated.reward}")
        return updated, pool_record

    def unstake(self, pool: PoolKey, user: IdentityLike,
                amount: int) -> Tuple[UserRecord, PoolRecord]:
        """Withdraw ``amount`` of principal and pay out the pending reward."""
        logger.info("Instruction Unstake")
        pool = self.pool_key(*pool)
        user = Identity.parse(user)
        _require_amount(amount)

        with self._user_lock(pool, user), self.store.lock_user(pool, user):
            self._require_pool(pool)
            record = self._require_user(pool, user)
            now = self.clock.now()
            self._require_unlocked(record, now)
            if amount > record.amount:
                raise InsufficientStake(f"cannot unstake {amount}, only {record.amount} staked")

            remaining = checked_sub(record.amount, amount)
            if remaining == 0:
                updated = UserRecord()
            else:
                updated = UserRecord(
                    amount=remaining,
                    deposit_time=record.deposit_time,
                    lock_duration=record.lock_duration,
                    reward=0,
                )

            wallet = TokenAccount(user, pool.token)
            custody = TokenAccount(pool.admin, pool.token)
            self.ledger.mint(record.reward, pool.admin, wallet)
            try:
                self.ledger.transfer(amount, pool.admin, custody, wallet)
            except LedgerError:
                if record.reward > 0:
                    logger.warning(
                        f"Reward of {record.reward} was minted to {wallet} "
                        f"but the withdrawal transfer failed"
                    )
                raise

            pool_record = self._commit(pool, user, updated, -amount)

        logger.info(f"{user} unstaked {amount}, paid reward {record.reward}")
        return updated, pool_record

    def claim_reward(self, pool: PoolKey, user: IdentityLike) -> UserRecord:
        logger.info("Instruction Claim Reward")
        pool = self.pool_key(*pool)
        user = Identity.parse(user)

        with self._user_lock(pool, user), self.store.lock_user(pool, user):
            self._require_pool(pool)
            record = self._require_user(pool, user)
            self._require_unlocked(record, self.clock.now())
            if record.reward == 0:
                raise NoRewardAvailable(f"{user} has no reward to claim")

            self.ledger.mint(record.reward, pool.admin, TokenAccount(user, pool.token))
            updated = record.model_copy(update={"reward": 0})
            self._commit(pool, user, updated, 0)

        logger.info(f"{user} claimed reward {record.reward}")
        return updated

    def get_user_info(self, pool: PoolKey, user: IdentityLike) -> UserRecord:
        return self._require_user(self.pool_key(*pool), Identity.parse(user))

    def get_pool_info(self, pool: PoolKey) -> PoolRecord:
        return self._require_pool(self.pool_key(*pool))

    def get_total_staked(self, pool: PoolKey) -> int:
        return self.get_pool_info(pool).total_staked

    def user_state(self, pool: PoolKey, user: IdentityLike) -> StakeState:
        record = self.store.get_user(self.pool_key(*pool), Identity.parse(user)) or UserRecord()
        return record.state(self.clock.now())

    def staked_sum(self, pool: PoolKey) -> int:
        """Sum of every participant's principal; equals ``total_staked``."""
        return sum(record.amount for _, record in self.store.users(self.pool_key(*pool)))
