from __future__ import annotations

"""
Client-side helpers: derive addresses, build and sign envelopes, submit.

    client = VotingClient(executor, owner_keypair)
    client.initialize()
    pid = client.create_proposal("Primera")
    VotingClient(executor, voter_keypair).vote(pid)

The builders are plain functions so the HTTP lane (or any other transport)
can sign envelopes without an executor in hand.
"""

from typing import Any, Dict, List, Optional, Tuple

from .crypto_utils import Keypair
from .voting_runtime.accounts import Config, Proposal
from .voting_runtime.addresses import (
    SYSTEM_PROGRAM_ID,
    config_address,
    proposal_address,
    vote_record_address,
)
from .voting_runtime.tx_codec import TxDomain, TxEnvelope, new_nonce, sign_envelope


class TransactionError(RuntimeError):
    """Raised by VotingClient when the executor rejects a transaction."""

    def __init__(self, receipt: Dict[str, Any]) -> None:
        self.receipt = receipt
        self.code = receipt.get("code")
        super().__init__(f"transaction {receipt.get('instruction')} failed: {receipt.get('error')}")


def _envelope(domain: TxDomain, instruction: str, args: Dict[str, Any], accounts: Dict[str, bytes], signers: List[Keypair]) -> TxEnvelope:
    env = TxEnvelope(
        chain_id=domain.chain_id,
        program_id=domain.program_id,
        schema_version=domain.schema_version,
        instruction=instruction,
        args=args,
        accounts={role: addr.hex() for role, addr in accounts.items()},
        signers=[kp.public_key_hex for kp in signers],
        nonce=new_nonce(),
    )
    return sign_envelope(domain, env, signers)


def build_initialize(domain: TxDomain, owner: Keypair) -> TxEnvelope:
    program_id = bytes.fromhex(domain.program_id)
    return _envelope(
        domain,
        "initialize",
        {},
        {
            "config": config_address(program_id),
            "owner": owner.public_key,
            "system_program": SYSTEM_PROGRAM_ID,
        },
        [owner],
    )


def build_create_proposal(domain: TxDomain, owner: Keypair, title: str, proposal_id: int) -> TxEnvelope:
    """`proposal_id` must be the current Config.total_proposals."""
    program_id = bytes.fromhex(domain.program_id)
    return _envelope(
        domain,
        "create_proposal",
        {"title": title},
        {
            "config": config_address(program_id),
            "owner": owner.public_key,
            "proposal": proposal_address(proposal_id, program_id),
            "system_program": SYSTEM_PROGRAM_ID,
        },
        [owner],
    )


def build_vote(domain: TxDomain, voter: Keypair, proposal_id: int) -> TxEnvelope:
    program_id = bytes.fromhex(domain.program_id)
    return _envelope(
        domain,
        "vote",
        {"proposal_id": int(proposal_id)},
        {
            "proposal": proposal_address(proposal_id, program_id),
            "voter": voter.public_key,
            "vote_record": vote_record_address(proposal_id, voter.public_key, program_id),
            "system_program": SYSTEM_PROGRAM_ID,
        },
        [voter],
    )


class VotingClient:
    def __init__(self, executor: Any, payer: Keypair) -> None:
        self.executor = executor
        self.payer = payer

    @property
    def domain(self) -> TxDomain:
        return self.executor.domain

    def send(self, env: TxEnvelope) -> Dict[str, Any]:
        ok, receipt = self.executor.submit(env)
        if not ok:
            raise TransactionError(receipt)
        return receipt

    def initialize(self) -> Dict[str, Any]:
        return self.send(build_initialize(self.domain, self.payer))

    def create_proposal(self, title: str, proposal_id: Optional[int] = None) -> int:
        if proposal_id is None:
            cfg = self.fetch_config()
            proposal_id = cfg.total_proposals if cfg is not None else 0
        receipt = self.send(build_create_proposal(self.domain, self.payer, title, proposal_id))
        return int(receipt["return"])

    def vote(self, proposal_id: int) -> Dict[str, Any]:
        return self.send(build_vote(self.domain, self.payer, proposal_id))

    def fetch_config(self) -> Optional[Config]:
        return self.executor.fetch_config()

    def fetch_proposal(self, proposal_id: int) -> Optional[Proposal]:
        return self.executor.fetch_proposal(proposal_id)

    def get_proposal(self, proposal_id: int) -> Tuple[str, int]:
        return self.executor.get_proposal(proposal_id)
