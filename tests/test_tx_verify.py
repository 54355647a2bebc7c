# tests/test_tx_verify.py

import pytest

from voting_node.client import build_initialize, build_vote
from voting_node.crypto_utils import Keypair, ed25519_verify, ed25519_verify_hex
from voting_node.voting_runtime.addresses import DEFAULT_PROGRAM_ID
from voting_node.voting_runtime.tx_codec import (
    TxDomain,
    TxEnvelope,
    canonical_bytes,
    derive_tx_id,
    sign_envelope,
    tx_signing_preimage,
)
from voting_node.voting_runtime.tx_verify import TxVerificationError, TxVerifyPolicy, verify_tx_envelope

DOMAIN = TxDomain(chain_id="voting-test", program_id=DEFAULT_PROGRAM_ID.hex())


def _resign_id_only(env: TxEnvelope) -> None:
    env.tx_id = derive_tx_id(DOMAIN, env)


def test_signed_envelope_verifies():
    env = build_initialize(DOMAIN, Keypair.generate())
    verify_tx_envelope(DOMAIN, env)


def test_dict_round_trip_still_verifies():
    env = build_vote(DOMAIN, Keypair.generate(), 3)
    verify_tx_envelope(DOMAIN, TxEnvelope.from_dict(env.to_dict()))


def test_canonical_bytes_ignore_signatures_and_id():
    env = build_initialize(DOMAIN, Keypair.generate())
    before = canonical_bytes(env)
    env.signatures = {}
    env.tx_id = ""
    assert canonical_bytes(env) == before


def test_tampered_args_change_tx_id():
    env = build_vote(DOMAIN, Keypair.generate(), 0)
    env.args["proposal_id"] = 1
    with pytest.raises(TxVerificationError, match="tx_id mismatch"):
        verify_tx_envelope(DOMAIN, env)


def test_tampered_envelope_with_fresh_id_fails_signature():
    env = build_vote(DOMAIN, Keypair.generate(), 0)
    env.args["proposal_id"] = 1
    _resign_id_only(env)
    with pytest.raises(TxVerificationError, match="signature verification failed"):
        verify_tx_envelope(DOMAIN, env)


def test_missing_signature_rejected():
    env = build_initialize(DOMAIN, Keypair.generate())
    env.signatures = {}
    with pytest.raises(TxVerificationError, match="missing signature"):
        verify_tx_envelope(DOMAIN, env)


def test_missing_signature_allowed_when_policy_waives():
    env = build_initialize(DOMAIN, Keypair.generate())
    env.signatures = {}
    verify_tx_envelope(DOMAIN, env, policy=TxVerifyPolicy(require_signatures=False))


def test_bad_signature_rejected_even_when_policy_waives():
    owner = Keypair.generate()
    env = build_initialize(DOMAIN, owner)
    env.signatures[owner.public_key_hex] = "00" * 64
    with pytest.raises(TxVerificationError):
        verify_tx_envelope(DOMAIN, env, policy=TxVerifyPolicy(require_signatures=False))


def test_signature_from_unlisted_key_rejected():
    env = build_initialize(DOMAIN, Keypair.generate())
    stranger = Keypair.generate()
    env.signatures[stranger.public_key_hex] = stranger.sign_hex(tx_signing_preimage(DOMAIN, env))
    with pytest.raises(TxVerificationError, match="unlisted"):
        verify_tx_envelope(DOMAIN, env)


def test_wrong_chain_rejected():
    env = build_initialize(DOMAIN, Keypair.generate())
    other = TxDomain(chain_id="elsewhere", program_id=DOMAIN.program_id)
    with pytest.raises(TxVerificationError, match="chain_id"):
        verify_tx_envelope(other, env)


def test_wrong_program_rejected():
    env = build_initialize(DOMAIN, Keypair.generate())
    other = TxDomain(chain_id=DOMAIN.chain_id, program_id="ab" * 32)
    with pytest.raises(TxVerificationError, match="program_id"):
        verify_tx_envelope(other, env)


def test_signature_is_domain_separated():
    owner = Keypair.generate()
    env = build_initialize(DOMAIN, owner)
    other = TxDomain(chain_id="elsewhere", program_id=DOMAIN.program_id)
    env.chain_id = other.chain_id
    env.tx_id = derive_tx_id(other, env)
    # signature was made for DOMAIN, not for `other`
    with pytest.raises(TxVerificationError, match="signature verification failed"):
        verify_tx_envelope(other, env)


def test_duplicate_signer_rejected():
    owner = Keypair.generate()
    env = TxEnvelope(
        chain_id=DOMAIN.chain_id,
        program_id=DOMAIN.program_id,
        instruction="initialize",
        signers=[owner.public_key_hex, owner.public_key_hex],
    )
    sign_envelope(DOMAIN, env, [owner])
    with pytest.raises(TxVerificationError, match="duplicate"):
        verify_tx_envelope(DOMAIN, env)


def test_no_signers_rejected():
    env = TxEnvelope(chain_id=DOMAIN.chain_id, program_id=DOMAIN.program_id, instruction="initialize")
    sign_envelope(DOMAIN, env, [])
    with pytest.raises(TxVerificationError, match="signer"):
        verify_tx_envelope(DOMAIN, env)


def test_keypair_sign_verify_and_file_round_trip(tmp_path):
    kp = Keypair.generate()
    sig = kp.sign(b"hello")
    assert ed25519_verify(kp.public_key, b"hello", sig)
    assert not ed25519_verify(kp.public_key, b"hullo", sig)
    assert ed25519_verify_hex(kp.public_key_hex, b"hello", sig.hex())
    assert not ed25519_verify_hex("nothex", b"hello", sig.hex())

    path = kp.save(tmp_path / "keys" / "owner.json")
    assert Keypair.load(path).public_key_hex == kp.public_key_hex


def test_keypair_from_seed_is_deterministic():
    seed = bytes(range(32))
    assert Keypair.from_seed(seed).public_key == Keypair.from_seed(seed).public_key
    with pytest.raises(ValueError):
        Keypair.from_seed(b"short")
