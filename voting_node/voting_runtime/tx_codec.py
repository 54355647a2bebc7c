# voting_node/voting_runtime/tx_codec.py
from __future__ import annotations

"""
Signed request envelope.

This module provides:
- TxEnvelope (dict round-trip for the HTTP lane)
- canonical bytes for signing / tx_id derivation
- tx_id derivation (domain-separated)
- sign_envelope() for clients

An envelope names one instruction, its arguments and the accounts it
touches by role (e.g. {"config": <hex>, "owner": <hex>}). `signers` lists
the public keys that must sign; the first one is the fee payer.
"""

import hashlib
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from .atomic_store import canonical_json_bytes


@dataclass(frozen=True)
class TxDomain:
    """
    Domain separation + network binding for tx-id and signatures.
    """
    chain_id: str
    program_id: str
    schema_version: int = 1
    domain_tag: bytes = b"VOTING/TX/v1"


@dataclass
class TxEnvelope:
    chain_id: str
    program_id: str
    instruction: str
    args: Dict[str, Any] = field(default_factory=dict)
    accounts: Dict[str, str] = field(default_factory=dict)
    signers: List[str] = field(default_factory=list)
    nonce: str = ""
    schema_version: int = 1
    signatures: Dict[str, str] = field(default_factory=dict)
    tx_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "program_id": self.program_id,
            "instruction": self.instruction,
            "args": dict(self.args),
            "accounts": dict(self.accounts),
            "signers": list(self.signers),
            "nonce": self.nonce,
            "schema_version": int(self.schema_version),
            "signatures": dict(self.signatures),
            "tx_id": self.tx_id,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TxEnvelope":
        return cls(
            chain_id=str(d.get("chain_id", "")),
            program_id=str(d.get("program_id", "")),
            instruction=str(d.get("instruction", "")),
            args=dict(d.get("args") or {}),
            accounts={str(k): str(v) for k, v in (d.get("accounts") or {}).items()},
            signers=[str(s) for s in (d.get("signers") or [])],
            nonce=str(d.get("nonce", "")),
            schema_version=int(d.get("schema_version", 1)),
            signatures={str(k): str(v) for k, v in (d.get("signatures") or {}).items()},
            tx_id=str(d.get("tx_id", "")),
        )


def new_nonce() -> str:
    return os.urandom(16).hex()


def canonical_bytes(env: TxEnvelope) -> bytes:
    """
    Canonical bytes for hashing / signing.

    Must exclude signatures to avoid circularity.
    Must exclude tx_id because it is derived from canonical content.
    """
    body = env.to_dict()
    body.pop("signatures", None)
    body.pop("tx_id", None)
    return canonical_json_bytes(body)


def tx_signing_preimage(domain: TxDomain, env: TxEnvelope) -> bytes:
    """
    Preimage that is signed by every signer:
      SHA256(domain_tag || chain_id || program_id || schema_version || canonical_tx_bytes)
    """
    payload = (
        domain.domain_tag
        + domain.chain_id.encode("utf-8")
        + domain.program_id.encode("utf-8")
        + str(int(domain.schema_version)).encode("utf-8")
        + canonical_bytes(env)
    )
    return hashlib.sha256(payload).digest()


def derive_tx_id(domain: TxDomain, env: TxEnvelope) -> str:
    return tx_signing_preimage(domain, env).hex()


def sign_envelope(domain: TxDomain, env: TxEnvelope, keypairs: Iterable[Any]) -> TxEnvelope:
    """
    Fill tx_id and add a signature from each keypair.

    Keypairs only need `public_key_hex` and `sign(bytes) -> bytes`.
    """
    env.tx_id = derive_tx_id(domain, env)
    preimage = tx_signing_preimage(domain, env)
    for kp in keypairs:
        env.signatures[kp.public_key_hex] = kp.sign(preimage).hex()
    return env
