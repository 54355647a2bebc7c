from __future__ import annotations

"""
Envelope verification.

Verifies:
- schema_version, chain_id and program_id
- every signer is a 32-byte key and the signer list has no duplicates
- tx_id matches the canonical hash (domain separated)
- each listed signer produced a valid signature over the signing preimage
- no signature from a key that is not listed as a signer

With policy.require_signatures=False (dev only) unsigned envelopes pass,
but any signature that IS present must still verify.
"""

from dataclasses import dataclass
from typing import Optional

from ..crypto_utils import PUBLIC_KEY_LEN, SIGNATURE_LEN, ed25519_verify
from .tx_codec import TxDomain, TxEnvelope, derive_tx_id, tx_signing_preimage


@dataclass(frozen=True)
class TxVerifyPolicy:
    require_signatures: bool = True
    max_signers: int = 8


class TxVerificationError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise TxVerificationError(msg)


def _hex32(h: str, what: str) -> bytes:
    try:
        raw = bytes.fromhex(h)
    except ValueError as e:
        raise TxVerificationError(f"{what} is not hex") from e
    _require(len(raw) == PUBLIC_KEY_LEN, f"{what} must be {PUBLIC_KEY_LEN} bytes (ed25519 pubkey)")
    return raw


def verify_tx_envelope(
    domain: TxDomain,
    env: TxEnvelope,
    *,
    policy: Optional[TxVerifyPolicy] = None,
) -> None:
    pol = policy or TxVerifyPolicy()

    _require(int(env.schema_version) == int(domain.schema_version), "schema_version mismatch")
    _require(env.chain_id == domain.chain_id, "chain_id mismatch")
    _require(env.program_id == domain.program_id, "program_id mismatch")
    _require(bool(env.instruction), "instruction missing")

    _require(len(env.signers) >= 1, "at least one signer (fee payer) required")
    _require(len(env.signers) <= pol.max_signers, f"at most {pol.max_signers} signers")
    _require(len(set(env.signers)) == len(env.signers), "duplicate signer")
    signer_keys = {s: _hex32(s, "signer") for s in env.signers}

    _require(bool(env.tx_id), "tx_id missing")
    _require(env.tx_id == derive_tx_id(domain, env), "tx_id mismatch")

    unknown = set(env.signatures) - set(env.signers)
    _require(not unknown, "signature from unlisted key")

    preimage = tx_signing_preimage(domain, env)
    for signer_hex, pk in signer_keys.items():
        sig_hex = env.signatures.get(signer_hex)
        if not sig_hex:
            _require(not pol.require_signatures, f"missing signature for {signer_hex}")
            continue
        try:
            sig = bytes.fromhex(sig_hex)
        except ValueError as e:
            raise TxVerificationError("signature is not hex") from e
        _require(len(sig) == SIGNATURE_LEN, f"signature must be {SIGNATURE_LEN} bytes (ed25519 signature)")
        _require(ed25519_verify(pk, preimage, sig), f"signature verification failed for {signer_hex}")
