from __future__ import annotations

"""
Program-derived addresses.

An address is a SHA-256 digest over the seeds, a one-byte bump, the program
id and a fixed marker. Candidates that decode to a valid Ed25519 point are
skipped (bump counts down from 255), so no private key can ever sign for a
derived address and only the program may write to it.

Client and core share this module: the client derives the addresses it
names in a request, the core re-derives them and rejects any mismatch.
"""

import hashlib
from typing import Iterable, Tuple

MAX_SEEDS = 16
MAX_SEED_LEN = 32
PDA_MARKER = b"ProgramDerivedAddress"

CONFIG_TAG = b"config"
PROPOSAL_TAG = b"proposal"
VOTE_TAG = b"vote"

# Default program id for local deployments; override with config program.id
DEFAULT_PROGRAM_ID: bytes = hashlib.sha256(b"voting_node/program/v1").digest()

# System program (owner of plain wallet accounts)
SYSTEM_PROGRAM_ID: bytes = bytes(32)


class AddressDerivationError(ValueError):
    pass


# ---------------------------------------------------------------------------
# Ed25519 curve check
# ---------------------------------------------------------------------------

_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(candidate: bytes) -> bool:
    """
    True if `candidate` decompresses to a point on edwards25519.

    x^2 = (y^2 - 1) / (d*y^2 + 1); the point exists iff the right side is a
    square mod p (Euler's criterion). d is a non-square so the denominator
    never vanishes.
    """
    if len(candidate) != 32:
        return False
    y = int.from_bytes(candidate, "little") & ((1 << 255) - 1)
    y %= _P
    yy = y * y % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


def u32_le(n: int) -> bytes:
    n = int(n)
    if n < 0 or n > 0xFFFFFFFF:
        raise AddressDerivationError(f"u32 out of range: {n}")
    return n.to_bytes(4, "little")


def _check_seeds(seeds: Iterable[bytes]) -> list:
    out = [bytes(s) for s in seeds]
    if len(out) > MAX_SEEDS:
        raise AddressDerivationError(f"at most {MAX_SEEDS} seeds allowed")
    for s in out:
        if len(s) > MAX_SEED_LEN:
            raise AddressDerivationError(f"seed longer than {MAX_SEED_LEN} bytes")
    return out


def create_program_address(seeds: Iterable[bytes], program_id: bytes = DEFAULT_PROGRAM_ID) -> bytes:
    """
    Hash seeds (bump already appended by the caller) into an address.

    Raises AddressDerivationError when the digest is a valid curve point.
    """
    parts = _check_seeds(seeds)
    h = hashlib.sha256()
    for s in parts:
        h.update(s)
    h.update(bytes(program_id))
    h.update(PDA_MARKER)
    digest = h.digest()
    if is_on_curve(digest):
        raise AddressDerivationError("derived address lies on the ed25519 curve")
    return digest


def find_program_address(seeds: Iterable[bytes], program_id: bytes = DEFAULT_PROGRAM_ID) -> Tuple[bytes, int]:
    base = _check_seeds(seeds)
    for bump in range(255, -1, -1):
        try:
            return create_program_address(base + [bytes([bump])], program_id), bump
        except AddressDerivationError:
            continue
    raise AddressDerivationError("unable to find a viable program address bump")


def derive(tag: bytes, *keys: bytes, program_id: bytes = DEFAULT_PROGRAM_ID) -> Tuple[bytes, int]:
    """derive(tag, keys...) -> (address, bump)"""
    return find_program_address([bytes(tag), *keys], program_id)


def config_address(program_id: bytes = DEFAULT_PROGRAM_ID) -> bytes:
    return derive(CONFIG_TAG, program_id=program_id)[0]


def proposal_address(proposal_id: int, program_id: bytes = DEFAULT_PROGRAM_ID) -> bytes:
    return derive(PROPOSAL_TAG, u32_le(proposal_id), program_id=program_id)[0]


def vote_record_address(proposal_id: int, voter: bytes, program_id: bytes = DEFAULT_PROGRAM_ID) -> bytes:
    voter = bytes(voter)
    if len(voter) != 32:
        raise AddressDerivationError("voter must be a 32-byte public key")
    return derive(VOTE_TAG, u32_le(proposal_id), voter, program_id=program_id)[0]


# ---------------------------------------------------------------------------
# Hex helpers (addresses travel as lowercase hex outside the core)
# ---------------------------------------------------------------------------


def from_hex(h: str) -> bytes:
    h = str(h or "").strip().lower()
    if h.startswith("0x"):
        h = h[2:]
    try:
        raw = bytes.fromhex(h)
    except ValueError as e:
        raise AddressDerivationError(f"invalid hex address: {h!r}") from e
    if len(raw) != 32:
        raise AddressDerivationError(f"address must be 32 bytes, got {len(raw)}")
    return raw
