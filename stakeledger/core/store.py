"""Record arenas keyed by pool and participant identity."""
from abc import ABC, abstractmethod
from contextlib import nullcontext
from pathlib import Path
from typing import ContextManager, Dict, Iterator, Optional, Tuple, Union

from loguru import logger

from .files import FileLock, write_atomic
from .records import Identity, PoolKey, PoolRecord, UserRecord


class RecordStore(ABC):
    """Lookup and replacement of pool and user records."""

    @abstractmethod
    def get_pool(self, pool: PoolKey) -> Optional[PoolRecord]:
        ...

    @abstractmethod
    def put_pool(self, record: PoolRecord) -> None:
        ...

    @abstractmethod
    def get_user(self, pool: PoolKey, user: Identity) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def put_user(self, pool: PoolKey, user: Identity, record: UserRecord) -> None:
        ...

    @abstractmethod
    def users(self, pool: PoolKey) -> Iterator[Tuple[Identity, UserRecord]]:
        """Yield every participant record of ``pool``."""

    def lock_pool(self, pool: PoolKey) -> ContextManager:
        """Exclude other writers of ``pool`` that share this store's backing data."""
        return nullcontext()

    def lock_user(self, pool: PoolKey, user: Identity) -> ContextManager:
        """Exclude other writers of one participant record."""
        return nullcontext()


class MemoryRecordStore(RecordStore):

    def __init__(self):
        self._pools: Dict[PoolKey, PoolRecord] = {}
        self._users: Dict[PoolKey, Dict[Identity, UserRecord]] = {}

    def get_pool(self, pool: PoolKey) -> Optional[PoolRecord]:
        return self._pools.get(pool)

    def put_pool(self, record: PoolRecord) -> None:
        self._pools[record.key] = record

    def get_user(self, pool: PoolKey, user: Identity) -> Optional[UserRecord]:
        return self._users.get(pool, {}).get(user)

    def put_user(self, pool: PoolKey, user: Identity, record: UserRecord) -> None:
        self._users.setdefault(pool, {})[user] = record

    def users(self, pool: PoolKey) -> Iterator[Tuple[Identity, UserRecord]]:
        yield from list(self._users.get(pool, {}).items())


class FileRecordStore(RecordStore):
    """Stores each record as account data in its own file under ``data_dir``.

    Layout::

        pools/<admin>-<token>.bin
        users/<admin>-<token>/<user>.bin
        locks/<admin>-<token>.lock
        locks/<admin>-<token>-<user>.lock

    Writers in other processes are excluded through ``flock`` on the lock
    files, so any number of programs may share one directory.
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        (self.data_dir / "pools").mkdir(parents=True, exist_ok=True)
        (self.data_dir / "users").mkdir(parents=True, exist_ok=True)

    def _pool_path(self, pool: PoolKey) -> Path:
        return self.data_dir / "pools" / f"{pool}.bin"

    def _user_dir(self, pool: PoolKey) -> Path:
        return self.data_dir / "users" / str(pool)

    def lock_pool(self, pool: PoolKey) -> FileLock:
        return FileLock(self.data_dir / "locks" / f"{pool}.lock")

    def lock_user(self, pool: PoolKey, user: Identity) -> FileLock:
        return FileLock(self.data_dir / "locks" / f"{pool}-{user}.lock")

    def get_pool(self, pool: PoolKey) -> Optional[PoolRecord]:
        path = self._pool_path(pool)
        if not path.exists():
            return None
        return PoolRecord.from_account_data(path.read_bytes())

    def put_pool(self, record: PoolRecord) -> None:
        write_atomic(self._pool_path(record.key), record.to_account_data())

    def get_user(self, pool: PoolKey, user: Identity) -> Optional[UserRecord]:
        path = self._user_dir(pool) / f"{user}.bin"
        if not path.exists():
            return None
        return UserRecord.from_account_data(path.read_bytes())

    def put_user(self, pool: PoolKey, user: Identity, record: UserRecord) -> None:
        write_atomic(self._user_dir(pool) / f"{user}.bin", record.to_account_data())

    def users(self, pool: PoolKey) -> Iterator[Tuple[Identity, UserRecord]]:
        user_dir = self._user_dir(pool)
        if not user_dir.exists():
            return
        for path in sorted(user_dir.glob("*.bin")):
            try:
                user = Identity.parse(path.stem)
                record = UserRecord.from_account_data(path.read_bytes())
            except ValueError as e:
                logger.error(f"Skipping unreadable user record {path}: {e}")
                continue
            yield user, record
