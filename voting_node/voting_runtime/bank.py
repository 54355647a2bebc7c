"""
voting_node/voting_runtime/bank.py
----------------------------------

Lamport accounting for account creation.

Every program account must hold a rent-exempt balance, paid by the signer
that creates it (the owner for Config and proposals, the voter for its
VoteRecord). Plain wallets are system-owned accounts with no data; the dev
faucet (`airdrop`) is the only way lamports enter the arena.

Invariants:

- Funding a new account moves lamports; it never mints or burns.
- A payer can never go negative: short balances raise InsufficientFunds
  before anything is staged.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass

from .account_store import Account, AccountStore, StagedAccounts, new_account
from .addresses import SYSTEM_PROGRAM_ID
from .errors import AccountAlreadyInUse, InsufficientFunds

# Storage overhead charged on top of the data length
ACCOUNT_STORAGE_OVERHEAD: int = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR: int = 3480
DEFAULT_EXEMPTION_YEARS: float = 2.0

SYSTEM_OWNER_HEX = SYSTEM_PROGRAM_ID.hex()


@dataclass(frozen=True)
class Rent:
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR
    exemption_years: float = DEFAULT_EXEMPTION_YEARS

    def minimum_balance(self, space: int) -> int:
        return int((ACCOUNT_STORAGE_OVERHEAD + int(space)) * self.lamports_per_byte_year * self.exemption_years)


def balance_of(staged: StagedAccounts, address: str) -> int:
    acct = staged.get(address)
    return int(acct["lamports"]) if acct else 0


def is_allocatable(acct: Account) -> bool:
    """A plain system wallet with no data: a pre-funded address `init` may take over."""
    return acct.get("owner") == SYSTEM_OWNER_HEX and acct.get("data") is None


def fund_new_account(
    staged: StagedAccounts,
    *,
    payer: str,
    address: str,
    space: int,
    owner: str,
    data: dict,
    rent: Rent,
) -> None:
    """
    Allocate `address` with `space` bytes of program data, paid by `payer`.

    An address that already holds a bare system wallet (someone sent it
    lamports) is topped up to the rent minimum and assigned to `owner`; the
    payer only covers the shortfall. Any other occupant is "already in use",
    reported before funds are checked so a double allocation fails the same
    way even when the payer is broke.
    """
    existing = staged.get(address)
    if existing is not None and not is_allocatable(existing):
        raise AccountAlreadyInUse(address)

    needed = rent.minimum_balance(space)
    prefunded = int(existing["lamports"]) if existing is not None else 0
    shortfall = max(0, needed - prefunded)

    if shortfall:
        available = balance_of(staged, payer)
        if available < shortfall:
            raise InsufficientFunds(needed=shortfall, available=available)
        staged.get(payer)["lamports"] = available - shortfall

    if existing is None:
        staged.create(address, new_account(needed, owner, data))
        return
    existing["lamports"] = prefunded + shortfall
    existing["owner"] = owner
    existing["data"] = copy.deepcopy(data)



def airdrop(store: AccountStore, address: str, lamports: int) -> int:
    """Credit a wallet from thin air (dev/test only). Returns the new balance."""
    lamports = int(lamports)
    if lamports <= 0:
        raise ValueError("airdrop amount must be > 0")

    staged = StagedAccounts(store)
    acct = staged.get(address)
    if acct is None:
        acct = staged.create(address, new_account(0, SYSTEM_OWNER_HEX))
    acct["lamports"] = int(acct["lamports"]) + lamports
    staged.commit()
    return int(acct["lamports"])
