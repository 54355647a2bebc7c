from __future__ import annotations

"""
Program-owned records.

Each record serializes to a JSON-safe dict carrying a `kind` discriminator.
`load_record` refuses a dict of the wrong kind, so an address holding a
Proposal can never be read back as a Config.

Sizes mirror the on-ledger byte layout (8-byte discriminator + fields) and
feed the rent calculation in bank.py.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar

from .errors import AccountDiscriminatorMismatch, MathOverflow

U32_MAX = 0xFFFFFFFF
DISCRIMINATOR_LEN = 8
MAX_TITLE_LEN = 64


def checked_add_u32(a: int, b: int) -> int:
    out = int(a) + int(b)
    if out < 0 or out > U32_MAX:
        raise MathOverflow()
    return out


@dataclass
class Config:
    owner: str  # hex pubkey
    total_proposals: int = 0

    KIND = "config"
    SIZE = 32 + 4

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.KIND, "owner": self.owner, "total_proposals": int(self.total_proposals)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        return cls(owner=str(d["owner"]), total_proposals=int(d.get("total_proposals", 0)))


@dataclass
class Proposal:
    id: int
    title: str
    votes: int = 0

    KIND = "proposal"

    @staticmethod
    def space_for_title() -> int:
        # id + votes + string length prefix + bytes
        return 4 + 4 + 4 + MAX_TITLE_LEN

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.KIND, "id": int(self.id), "title": self.title, "votes": int(self.votes)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Proposal":
        return cls(id=int(d["id"]), title=str(d.get("title", "")), votes=int(d.get("votes", 0)))


@dataclass
class VoteRecord:
    proposal_id: int
    voter: str  # hex pubkey

    KIND = "vote_record"
    SIZE = 4 + 32

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.KIND, "proposal_id": int(self.proposal_id), "voter": self.voter}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VoteRecord":
        return cls(proposal_id=int(d["proposal_id"]), voter=str(d["voter"]))


CONFIG_SPACE = DISCRIMINATOR_LEN + Config.SIZE
PROPOSAL_SPACE = DISCRIMINATOR_LEN + Proposal.space_for_title()
VOTE_RECORD_SPACE = DISCRIMINATOR_LEN + VoteRecord.SIZE

R = TypeVar("R", Config, Proposal, VoteRecord)


def load_record(data: Optional[Dict[str, Any]], cls: Type[R]) -> R:
    if not isinstance(data, dict) or data.get("kind") != cls.KIND:
        raise AccountDiscriminatorMismatch()
    try:
        return cls.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise AccountDiscriminatorMismatch(f"malformed {cls.KIND} account: {e}") from e
