"""Unit tests for the local token ledger."""
import json
import pytest
from stakeledger.core.errors import LedgerError
from stakeledger.core.ledger import InMemoryTokenLedger
from stakeledger.core.records import U64_MAX, TokenAccount


def test_mint_requires_authority(ledger, token, alice, bob):
    with pytest.raises(LedgerError):
        ledger.mint(5, alice, TokenAccount(bob, token))
    assert ledger.balance(TokenAccount(bob, token)) == 10_000


def test_mint_unknown_token(ledger, admin, alice, identity_factory):
    with pytest.raises(LedgerError):
        ledger.mint(5, admin, TokenAccount(alice, identity_factory(42)))


def test_mint_zero_succeeds(ledger, admin, token, alice):
    ledger.mint(0, admin, TokenAccount(alice, token))
    assert ledger.balance(TokenAccount(alice, token)) == 10_000


def test_mint_overflow(ledger, admin, token, alice):
    with pytest.raises(LedgerError):
        ledger.mint(U64_MAX, admin, TokenAccount(alice, token))
    assert ledger.balance(TokenAccount(alice, token)) == 10_000


def test_create_mint_twice(ledger, admin, token):
    with pytest.raises(LedgerError):
        ledger.create_mint(token, admin)


def test_transfer(ledger, token, alice, bob):
    ledger.transfer(2_500, alice, TokenAccount(alice, token), TokenAccount(bob, token))
    assert ledger.balance(TokenAccount(alice, token)) == 7_500
    assert ledger.balance(TokenAccount(bob, token)) == 12_500


def test_transfer_insufficient_funds(ledger, token, alice, bob):
    with pytest.raises(LedgerError):
        ledger.transfer(10_001, alice, TokenAccount(alice, token), TokenAccount(bob, token))
    assert ledger.balance(TokenAccount(alice, token)) == 10_000
    assert ledger.balance(TokenAccount(bob, token)) == 10_000


def test_transfer_wrong_authority(ledger, token, alice, bob):
    with pytest.raises(LedgerError):
        ledger.transfer(1, bob, TokenAccount(alice, token), TokenAccount(bob, token))


def test_transfer_between_tokens(ledger, admin, token, alice, identity_factory):
    other = identity_factory(42)
    with pytest.raises(LedgerError):
        ledger.transfer(1, alice, TokenAccount(alice, token), TokenAccount(alice, other))


def test_persistence(tmp_path, admin, token, alice):
    path = tmp_path / "ledger.json"
    ledger = InMemoryTokenLedger(path)
    ledger.create_mint(token, admin)
    ledger.mint(300, admin, TokenAccount(alice, token))

    data = json.loads(path.read_text())
    assert data["mints"] == {str(token): str(admin)}
    assert data["balances"] == [{"owner": str(alice), "token": str(token), "amount": 300}]

    reloaded = InMemoryTokenLedger(path)
    assert reloaded.balance(TokenAccount(alice, token)) == 300
    reloaded.mint(1, admin, TokenAccount(alice, token))
    assert InMemoryTokenLedger(path).balance(TokenAccount(alice, token)) == 301


def test_instances_sharing_a_file_see_each_other(tmp_path, admin, token, alice, bob):
    path = tmp_path / "ledger.json"
    first = InMemoryTokenLedger(path)
    first.create_mint(token, admin)
    second = InMemoryTokenLedger(path)

    first.mint(100, admin, TokenAccount(alice, token))
    second.mint(50, admin, TokenAccount(bob, token))
    first.transfer(30, alice, TokenAccount(alice, token), TokenAccount(bob, token))

    for ledger in (first, second, InMemoryTokenLedger(path)):
        assert ledger.balance(TokenAccount(alice, token)) == 70
        assert ledger.balance(TokenAccount(bob, token)) == 80
