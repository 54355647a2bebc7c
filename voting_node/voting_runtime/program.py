from __future__ import annotations

"""
Voting program: instruction handlers and read-only views.

Handlers run against an InstructionContext whose `staged` buffer is
committed by the executor only if the handler returns normally. Any
ProgramError leaves the arena untouched.

Account roles per instruction:

    initialize       config, owner(signer)
    create_proposal  config, owner(signer), proposal
    vote             proposal, voter(signer), vote_record

`system_program` may be named on any instruction; when present it must be
the system program id.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .account_store import AccountStore, StagedAccounts
from .accounts import (
    CONFIG_SPACE,
    MAX_TITLE_LEN,
    PROPOSAL_SPACE,
    VOTE_RECORD_SPACE,
    Config,
    Proposal,
    VoteRecord,
    checked_add_u32,
    load_record,
)
from .addresses import (
    CONFIG_TAG,
    PROPOSAL_TAG,
    SYSTEM_PROGRAM_ID,
    VOTE_TAG,
    derive,
    u32_le,
)
from .bank import Rent, fund_new_account
from .errors import (
    AccountNotInitialized,
    AccountNotSigner,
    AccountOwnedByWrongProgram,
    ConstraintSeeds,
    InvalidInstruction,
    InvalidProgramId,
    InvalidProposalAccount,
    NotOwner,
    TitleTooLong,
)

log = logging.getLogger(__name__)


@dataclass
class InstructionContext:
    program_id: bytes
    accounts: Dict[str, str]
    signers: Set[str]
    staged: StagedAccounts
    rent: Rent = field(default_factory=Rent)
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def program_id_hex(self) -> str:
        return self.program_id.hex()

    def account(self, role: str) -> str:
        addr = self.accounts.get(role)
        if not addr:
            raise InvalidInstruction(f"missing account: {role}")
        return str(addr).lower()

    def signer(self, role: str) -> str:
        addr = self.account(role)
        if addr not in self.signers:
            raise AccountNotSigner(f"The given account did not sign: {role}")
        return addr

    def seeded(self, role: str, *seeds: bytes) -> str:
        """Account for `role`, checked against the address re-derived from seeds."""
        addr = self.account(role)
        expected, _bump = derive(*seeds, program_id=self.program_id)
        if addr != expected.hex():
            raise ConstraintSeeds(f"A seeds constraint was violated: {role}")
        return addr

    def load(self, address: str, cls):
        acct = self.staged.require(address)
        if acct.get("owner") != self.program_id_hex:
            raise AccountOwnedByWrongProgram()
        return acct, load_record(acct.get("data"), cls)

    def check_system_program(self) -> None:
        sp = self.accounts.get("system_program")
        if sp is not None and str(sp).lower() != SYSTEM_PROGRAM_ID.hex():
            raise InvalidProgramId()

    def emit(self, name: str, **fields: Any) -> None:
        event = {"name": name, **fields}
        self.events.append(event)
        log.info("event %s %s", name, fields)


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------


def initialize(ctx: InstructionContext) -> None:
    """Create the Config singleton; the signer becomes owner."""
    ctx.check_system_program()
    config_addr = ctx.seeded("config", CONFIG_TAG)
    owner = ctx.signer("owner")

    fund_new_account(
        ctx.staged,
        payer=owner,
        address=config_addr,
        space=CONFIG_SPACE,
        owner=ctx.program_id_hex,
        data=Config(owner=owner, total_proposals=0).to_dict(),
        rent=ctx.rent,
    )


def create_proposal(ctx: InstructionContext, title: str) -> int:
    """Owner only. Allocates the proposal at the current counter and bumps it."""
    ctx.check_system_program()
    config_addr = ctx.seeded("config", CONFIG_TAG)
    config_acct, config = ctx.load(config_addr, Config)

    next_id = config.total_proposals
    proposal_addr = ctx.seeded("proposal", PROPOSAL_TAG, u32_le(next_id))
    owner = ctx.signer("owner")

    # authorization comes first: a non-owner gets NotOwner whatever the title
    if owner != config.owner:
        raise NotOwner()
    if len(title.encode("utf-8")) > MAX_TITLE_LEN:
        raise TitleTooLong()

    config.total_proposals = checked_add_u32(config.total_proposals, 1)
    config_acct["data"] = config.to_dict()

    fund_new_account(
        ctx.staged,
        payer=owner,
        address=proposal_addr,
        space=PROPOSAL_SPACE,
        owner=ctx.program_id_hex,
        data=Proposal(id=next_id, title=title, votes=0).to_dict(),
        rent=ctx.rent,
    )

    ctx.emit("ProposalCreated", id=next_id, title=title)
    return next_id


def vote(ctx: InstructionContext, proposal_id: int) -> None:
    """One vote per (proposal, voter): a second VoteRecord allocation fails."""
    ctx.check_system_program()
    proposal_addr = ctx.seeded("proposal", PROPOSAL_TAG, u32_le(proposal_id))
    proposal_acct, proposal = ctx.load(proposal_addr, Proposal)

    voter = ctx.signer("voter")
    record_addr = ctx.seeded("vote_record", VOTE_TAG, u32_le(proposal_id), bytes.fromhex(voter))

    if proposal.id != proposal_id:
        raise InvalidProposalAccount()

    fund_new_account(
        ctx.staged,
        payer=voter,
        address=record_addr,
        space=VOTE_RECORD_SPACE,
        owner=ctx.program_id_hex,
        data=VoteRecord(proposal_id=proposal_id, voter=voter).to_dict(),
        rent=ctx.rent,
    )

    proposal.votes = checked_add_u32(proposal.votes, 1)
    proposal_acct["data"] = proposal.to_dict()

    ctx.emit("VoteCast", proposal_id=proposal_id, voter=voter)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _arg_title(args: Dict[str, Any]) -> Dict[str, Any]:
    title = args.get("title")
    if not isinstance(title, str):
        raise InvalidInstruction("create_proposal.title must be a string")
    return {"title": title}


def _arg_proposal_id(args: Dict[str, Any]) -> Dict[str, Any]:
    pid = args.get("proposal_id")
    if isinstance(pid, bool) or not isinstance(pid, int) or pid < 0 or pid > 0xFFFFFFFF:
        raise InvalidInstruction("vote.proposal_id must be a u32")
    return {"proposal_id": pid}


INSTRUCTIONS: Dict[str, Tuple[Callable[..., Any], Callable[[Dict[str, Any]], Dict[str, Any]]]] = {
    "initialize": (initialize, lambda _args: {}),
    "create_proposal": (create_proposal, _arg_title),
    "vote": (vote, _arg_proposal_id),
}


def execute(ctx: InstructionContext, instruction: str, args: Optional[Dict[str, Any]] = None) -> Any:
    entry = INSTRUCTIONS.get(instruction)
    if entry is None:
        raise InvalidInstruction(f"unknown instruction: {instruction}")
    handler, parse = entry
    return handler(ctx, **parse(dict(args or {})))


# ---------------------------------------------------------------------------
# Read-only views
# ---------------------------------------------------------------------------


def _view_record(store: AccountStore, program_id: bytes, address: bytes, cls):
    acct = store.get(address.hex())
    if acct is None:
        raise AccountNotInitialized()
    if acct.get("owner") != program_id.hex():
        raise AccountOwnedByWrongProgram()
    return load_record(acct.get("data"), cls)


def fetch_config(store: AccountStore, program_id: bytes) -> Config:
    return _view_record(store, program_id, derive(CONFIG_TAG, program_id=program_id)[0], Config)


def fetch_proposal(store: AccountStore, program_id: bytes, proposal_id: int) -> Proposal:
    addr, _bump = derive(PROPOSAL_TAG, u32_le(proposal_id), program_id=program_id)
    return _view_record(store, program_id, addr, Proposal)


def get_proposal(store: AccountStore, program_id: bytes, proposal_id: int) -> Tuple[str, int]:
    """(title, votes) for one proposal."""
    p = fetch_proposal(store, program_id, proposal_id)
    return p.title, p.votes


def total_proposals(store: AccountStore, program_id: bytes) -> int:
    return fetch_config(store, program_id).total_proposals


def has_voted(store: AccountStore, program_id: bytes, proposal_id: int, voter: bytes) -> bool:
    """True once a program-owned VoteRecord exists; lamports sent to the address do not count."""
    addr, _bump = derive(VOTE_TAG, u32_le(proposal_id), bytes(voter), program_id=program_id)
    acct = store.get(addr.hex())
    return acct is not None and acct.get("owner") == program_id.hex()
