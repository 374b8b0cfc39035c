"""Stake Ledger CLI."""
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from .config import LedgerConfig, configure_logging, load_config
from .core.clock import Clock, ManualClock, SystemClock
from .core.errors import LedgerError, StakingError
from .core.ledger import InMemoryTokenLedger, RpcTokenLedger, TokenLedger
from .core.program import StakingProgram
from .core.records import Identity, PoolKey, TokenAccount
from .core.store import FileRecordStore


class IdentityType(click.ParamType):
    """Base58 public key argument."""
    name = "identity"

    def convert(self, value, param, ctx):
        try:
            return Identity.parse(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


IDENTITY = IdentityType()
slot_option = click.option('--slot', type=click.IntRange(min=0), default=None,
                           help='Logical time of the operation (defaults to wall-clock seconds)')


class Session:
    """Wires configuration, store, ledger and clock for one command."""

    def __init__(self, config: LedgerConfig, remote: bool = False):
        self.config = config
        self.remote = remote
        self.data_dir = Path(config.data_dir)

    def ledger(self) -> TokenLedger:
        if self.remote:
            if not self.config.rpc_url:
                raise LedgerError("--remote needs rpc_url set in the config file")
            return RpcTokenLedger(self.config.rpc_url, timeout=self.config.request_timeout)
        return InMemoryTokenLedger(self.data_dir / 'ledger.json')

    def program(self, slot: Optional[int] = None) -> StakingProgram:
        clock: Clock = ManualClock(slot) if slot is not None else SystemClock()
        return StakingProgram(self.ledger(), clock, FileRecordStore(self.data_dir))


def _fail(error: Exception) -> None:
    logger.error(f"{error}")
    sys.exit(1)


def _show_user(user: Identity, record) -> None:
    click.echo(f"\nStake for {user}:")
    click.echo("-" * 60)
    click.echo(f"Amount:        {record.amount}")
    click.echo(f"Deposit slot:  {record.deposit_time}")
    click.echo(f"Lock duration: {record.lock_duration}")
    click.echo(f"Reward:        {record.reward}")


@click.group()
@click.version_option(package_name="stake-ledger")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='Path to a YAML config file')
@click.option('--data-dir', type=click.Path(file_okay=False), default=None,
              help='Directory holding records and the local ledger')
@click.option('--remote/--local', default=False,
              help='Use the configured RPC token ledger instead of the local one')
@click.pass_context
def cli(ctx, config_path: Optional[str], data_dir: Optional[str], remote: bool):
    """Stake Ledger CLI for lock-period token staking."""
    config = load_config(config_path)
    if data_dir:
        config.data_dir = Path(data_dir)
    configure_logging(config.log_level)
    ctx.obj = Session(config, remote=remote)


@cli.command('create-token')
@click.argument('token', type=IDENTITY)
@click.argument('authority', type=IDENTITY)
@click.pass_obj
def create_token(session: Session, token: Identity, authority: Identity):
    """Register TOKEN on the local ledger with AUTHORITY as mint authority."""
    if session.remote:
        _fail(click.UsageError("create-token only works with the local ledger"))
    try:
        session.ledger().create_mint(token, authority)
    except StakingError as e:
        _fail(e)
    click.echo(f"Created token {token} (mint authority {authority})")


@cli.command()
@click.argument('owner', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.argument('amount', type=click.IntRange(min=1))
@click.option('--authority', type=IDENTITY, required=True, help='Mint authority of TOKEN')
@click.pass_obj
def fund(session: Session, owner: Identity, token: Identity, amount: int, authority: Identity):
    """Mint AMOUNT of TOKEN into OWNER's wallet."""
    try:
        session.ledger().mint(amount, authority, TokenAccount(owner, token))
    except StakingError as e:
        _fail(e)
    click.echo(f"Minted {amount} to {owner}")


@cli.command()
@click.argument('owner', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.pass_obj
def balance(session: Session, owner: Identity, token: Identity):
    """Show OWNER's balance of TOKEN."""
    try:
        amount = session.ledger().balance(TokenAccount(owner, token))
    except StakingError as e:
        _fail(e)
    click.echo(f"Balance: {amount}")


@cli.command()
@click.argument('admin', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.pass_obj
def init(session: Session, admin: Identity, token: Identity):
    """Create the staking pool for ADMIN and TOKEN."""
    try:
        record = session.program().initialize(admin, token)
    except StakingError as e:
        _fail(e)
    click.echo(f"Initialized pool {record.key}")


@cli.command()
@click.argument('admin', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.argument('user', type=IDENTITY)
@click.argument('amount', type=click.IntRange(min=1))
@click.argument('lock_duration', type=click.IntRange(min=0))
@slot_option
@click.pass_obj
def stake(session: Session, admin: Identity, token: Identity, user: Identity,
          amount: int, lock_duration: int, slot: Optional[int]):
    """Stake AMOUNT for LOCK_DURATION slots."""
    try:
        record, pool = session.program(slot).stake(PoolKey(admin, token), user, amount, lock_duration)
    except StakingError as e:
        _fail(e)
    _show_user(user, record)
    click.echo(f"Pool total:    {pool.total_staked}")


@cli.command()
@click.argument('admin', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.argument('user', type=IDENTITY)
@click.argument('amount', type=click.IntRange(min=1))
@slot_option
@click.pass_obj
def unstake(session: Session, admin: Identity, token: Identity, user: Identity,
            amount: int, slot: Optional[int]):
    """Withdraw AMOUNT and collect any pending reward."""
    try:
        record, pool = session.program(slot).unstake(PoolKey(admin, token), user, amount)
    except StakingError as e:
        _fail(e)
    _show_user(user, record)
    click.echo(f"Pool total:    {pool.total_staked}")


@cli.command()
@click.argument('admin', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.argument('user', type=IDENTITY)
@slot_option
@click.pass_obj
def claim(session: Session, admin: Identity, token: Identity, user: Identity,
          slot: Optional[int]):
    """Claim the reward owed to USER."""
    program = session.program(slot)
    pool = PoolKey(admin, token)
    try:
        reward = program.get_user_info(pool, user).reward
        program.claim_reward(pool, user)
    except StakingError as e:
        _fail(e)
    click.echo(f"Claimed reward of {reward}")


@cli.command()
@click.argument('admin', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.argument('user', type=IDENTITY)
@slot_option
@click.pass_obj
def user(session: Session, admin: Identity, token: Identity, user: Identity,
         slot: Optional[int]):
    """Show USER's stake record."""
    program = session.program(slot)
    pool = PoolKey(admin, token)
    try:
        record = program.get_user_info(pool, user)
    except StakingError as e:
        _fail(e)
    _show_user(user, record)
    click.echo(f"State:         {program.user_state(pool, user).value}")


@cli.command()
@click.argument('admin', type=IDENTITY)
@click.argument('token', type=IDENTITY)
@click.pass_obj
def pool(session: Session, admin: Identity, token: Identity):
    """Show the pool's total staked amount."""
    try:
        record = session.program().get_pool_info(PoolKey(admin, token))
    except StakingError as e:
        _fail(e)
    click.echo(f"Pool {record.key}")
    click.echo(f"Total staked: {record.total_staked}")


if __name__ == "__main__":
    cli()
