"""Token ledger collaborators: the mint and transfer capability."""
import json
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import requests
from loguru import logger

from .errors import LedgerError
from .files import FileLock, write_atomic
from .records import U64_MAX, Identity, TokenAccount


class TokenLedger(ABC):
    """Moves and mints token balances on behalf of the staking program.

    Implementations must apply each call atomically and raise
    ``LedgerError`` without touching any balance when a call fails.
    """

    @abstractmethod
    def mint(self, amount: int, authority: Identity, to: TokenAccount) -> None:
        """Mint ``amount`` new tokens into ``to``. Minting zero succeeds."""

    @abstractmethod
    def transfer(self, amount: int, authority: Identity,
                 source: TokenAccount, destination: TokenAccount) -> None:
        """Move ``amount`` from ``source`` to ``destination``."""

    @abstractmethod
    def balance(self, account: TokenAccount) -> int:
        """Return the balance held by ``account``."""


class InMemoryTokenLedger(TokenLedger):
    """Local token ledger keeping balances in a dict.

    When ``path`` is given, every call takes an exclusive lock on
    ``<path>.lock``, reloads mint authorities and balances from the JSON file,
    and saves them back after a successful change. Several ledger instances,
    in one process or many, may then share the file.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._authorities: Dict[Identity, Identity] = {}
        self._balances: Dict[TokenAccount, int] = {}
        self._lock = threading.Lock()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            if not self.path:
                yield
                return
            with FileLock(self.path.with_name(self.path.name + ".lock")):
                self._load()
                yield

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path) as f:
            data = json.load(f)
        self._authorities = {
            Identity.parse(token): Identity.parse(authority)
            for token, authority in data.get("mints", {}).items()
        }
        self._balances = {}
        for entry in data.get("balances", []):
            account = TokenAccount(Identity.parse(entry["owner"]), Identity.parse(entry["token"]))
            self._balances[account] = int(entry["amount"])

    def _save(self) -> None:
        if not self.path:
            return
        data = {
            "mints": {str(token): str(authority) for token, authority in self._authorities.items()},
            "balances": [
                {"owner": str(account.owner), "token": str(account.token), "amount": amount}
                for account, amount in self._balances.items()
            ],
        }
        write_atomic(self.path, json.dumps(data, indent=2).encode())

    def create_mint(self, token: Identity, authority: Identity) -> None:
        """Register ``token`` with ``authority`` as the only identity allowed to mint it."""
        with self._locked():
            if token in self._authorities:
                raise LedgerError(f"mint {token} already exists")
            self._authorities[token] = authority
            self._save()

    def mint(self, amount: int, authority: Identity, to: TokenAccount) -> None:
        with self._locked():
            expected = self._authorities.get(to.token)
            if expected is None:
                raise LedgerError(f"unknown mint {to.token}")
            if authority != expected:
                raise LedgerError(f"{authority} is not the mint authority of {to.token}")
            new_balance = self._balances.get(to, 0) + amount
            if new_balance > U64_MAX:
                raise LedgerError(f"minting {amount} overflows balance of {to}")
            if amount == 0:
                return
            self._balances[to] = new_balance
            self._save()
        logger.debug(f"Minted {amount} to {to}")

    def transfer(self, amount: int, authority: Identity,
                 source: TokenAccount, destination: TokenAccount) -> None:
        with self._locked():
            if source.token != destination.token:
                raise LedgerError("source and destination hold different tokens")
            if authority != source.owner:
                raise LedgerError(f"{authority} cannot spend from {source}")
            available = self._balances.get(source, 0)
            if available < amount:
                raise LedgerError(f"insufficient funds in {source}: {available} < {amount}")
            if source == destination or amount == 0:
                return
            received = self._balances.get(destination, 0) + amount
            if received > U64_MAX:
                raise LedgerError(f"transfer of {amount} overflows balance of {destination}")
            self._balances[source] = available - amount
            self._balances[destination] = received
            self._save()
        logger.debug(f"Transferred {amount} from {source} to {destination}")

    def balance(self, account: TokenAccount) -> int:
        with self._locked():
            return self._balances.get(account, 0)


class RpcTokenLedger(TokenLedger):
    """Token ledger reached through a JSON-RPC 2.0 endpoint."""

    def __init__(self, rpc_url: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, params: dict):
        try:
            response = self.session.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "id": "dontcare",
                    "method": method,
                    "params": params,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Token ledger call {method} failed: {e}")
            raise LedgerError(f"{method} failed: {e}") from e

        if "error" in result:
            error = result["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            logger.error(f"Token ledger rejected {method}: {message}")
            raise LedgerError(f"{method} rejected: {message}")
        return result.get("result")

    @staticmethod
    def _account(account: TokenAccount) -> dict:
        return {"owner": str(account.owner), "token": str(account.token)}

    def mint(self, amount: int, authority: Identity, to: TokenAccount) -> None:
        self._call("mint_to", {
            "amount": amount,
            "authority": str(authority),
            "to": self._account(to),
        })

    def transfer(self, amount: int, authority: Identity,
                 source: TokenAccount, destination: TokenAccount) -> None:
        self._call("transfer", {
            "amount": amount,
            "authority": str(authority),
            "from": self._account(source),
            "to": self._account(destination),
        })

    def balance(self, account: TokenAccount) -> int:
        result = self._call("get_balance", {"account": self._account(account)})
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise LedgerError(f"get_balance returned {result!r}") from e
