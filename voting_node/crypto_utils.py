# voting_node/crypto_utils.py
from __future__ import annotations

"""
Ed25519 helpers for the voting node.

Identities are raw 32-byte Ed25519 public keys, carried as lowercase hex
outside the core. Signing and verification use `cryptography`.

Key files are JSON: {"secret_key": "<hex seed>", "public_key": "<hex>"}.
"""

import binascii
import json
import os
from pathlib import Path
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

PUBLIC_KEY_LEN = 32
SIGNATURE_LEN = 64


def _hex_to_bytes(h: str) -> bytes:
    """Decode hex string to raw bytes, accepting optional 0x prefix."""
    h = h.strip().lower()
    if h.startswith("0x"):
        h = h[2:]
    return binascii.unhexlify(h.encode("ascii"))


def _bytes_to_hex(b: bytes) -> str:
    return binascii.hexlify(b).decode("ascii")


class Keypair:
    """An Ed25519 signing key plus its public identity."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._sk = private_key
        self._pk_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        if len(seed) != 32:
            raise ValueError("ed25519 seed must be 32 bytes")
        return cls(Ed25519PrivateKey.from_private_bytes(bytes(seed)))

    @classmethod
    def from_seed_hex(cls, seed_hex: str) -> "Keypair":
        return cls.from_seed(_hex_to_bytes(seed_hex))

    @property
    def public_key(self) -> bytes:
        return self._pk_bytes

    @property
    def public_key_hex(self) -> str:
        return _bytes_to_hex(self._pk_bytes)

    def seed_bytes(self) -> bytes:
        return self._sk.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def sign(self, message: bytes) -> bytes:
        return self._sk.sign(bytes(message))

    def sign_hex(self, message: bytes) -> str:
        return _bytes_to_hex(self.sign(message))

    # -------------------
    # Key files
    # -------------------
    def save(self, path: Union[str, Path]) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        payload = {"secret_key": _bytes_to_hex(self.seed_bytes()), "public_key": self.public_key_hex}
        p.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.chmod(p, 0o600)
        return p

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Keypair":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        kp = cls.from_seed_hex(str(data["secret_key"]))
        expected = str(data.get("public_key") or "")
        if expected and expected.lower() != kp.public_key_hex:
            raise ValueError(f"key file {path} public_key does not match its secret")
        return kp

    def __repr__(self) -> str:
        return f"Keypair({self.public_key_hex})"


def ed25519_verify(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    Returns True if the signature is valid, False otherwise.
    """
    if len(public_key) != PUBLIC_KEY_LEN or len(signature) != SIGNATURE_LEN:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(bytes(signature), bytes(message))
    except (InvalidSignature, ValueError):
        return False
    return True


def ed25519_verify_hex(public_key_hex: str, message: bytes, signature_hex: str) -> bool:
    try:
        pk = _hex_to_bytes(public_key_hex)
        sig = _hex_to_bytes(signature_hex)
    except (binascii.Error, ValueError):
        return False
    return ed25519_verify(pk, message, sig)
