from __future__ import annotations

"""
Voting Executor

Single entry point for state transitions:

    envelope -> verify -> replay check -> instruction -> commit -> receipt

Each submission runs under one re-entrant lock, so transitions are applied
one at a time in arrival order. The account store's create-if-absent commit
is still the final guard: a VoteRecord or Proposal address can be created
exactly once no matter how submissions interleave.
"""

import logging
import threading
import time
from collections import OrderedDict, deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

from .config import default_config
from .storage.sqlite_store import SQLiteAccountStore
from .voting_runtime import program
from .voting_runtime.account_store import AccountStore, JsonAccountStore, MemoryAccountStore, StagedAccounts
from .voting_runtime.accounts import Config, Proposal
from .voting_runtime.addresses import DEFAULT_PROGRAM_ID, config_address
from .voting_runtime.bank import Rent, airdrop as bank_airdrop
from .voting_runtime.errors import AccountNotInitialized, AlreadyProcessed, ProgramError
from .voting_runtime.tx_codec import TxDomain, TxEnvelope
from .voting_runtime.tx_verify import TxVerificationError, TxVerifyPolicy, verify_tx_envelope

log = logging.getLogger(__name__)

MAX_RECEIPTS = 10_000
MAX_EVENTS = 1_000


def _now() -> float:
    return time.time()


# ------------------------------------------------------------------------------
# Seen-set (replay protection)
# ------------------------------------------------------------------------------


class SeenSet:
    def __init__(self, ttl_sec: int = 600):
        self.ttl_sec = ttl_sec
        self._m: Dict[str, float] = {}

    def _gc(self) -> None:
        now = _now()
        dead = [k for k, ts in self._m.items() if now - ts > self.ttl_sec]
        for k in dead:
            self._m.pop(k, None)

    def has(self, tx_id_hex: str) -> bool:
        self._gc()
        return tx_id_hex in self._m

    def mark(self, tx_id_hex: str) -> None:
        self._gc()
        self._m[tx_id_hex] = _now()


def open_store(cfg: Dict[str, Any]) -> AccountStore:
    p = cfg.get("persistence", {})
    driver = p.get("driver", "json")
    data_dir = Path(p.get("data_dir", "data"))

    if driver == "memory":
        return MemoryAccountStore()
    if driver == "sqlite":
        return SQLiteAccountStore(str(data_dir / p.get("sqlite_filename", "accounts.sqlite")))
    return JsonAccountStore(data_dir / p.get("json_filename", "accounts.json"), keep_backups=int(p.get("keep_backups", 2)))


# ------------------------------------------------------------------------------
# Executor
# ------------------------------------------------------------------------------


class VotingExecutor:
    def __init__(self, cfg: Optional[Dict[str, Any]] = None, *, store: Optional[AccountStore] = None) -> None:
        self.config = cfg or default_config()

        pid_hex = str(self.config.get("program", {}).get("id") or "")
        self.program_id: bytes = bytes.fromhex(pid_hex) if pid_hex else DEFAULT_PROGRAM_ID

        chain = self.config.get("chain", {})
        self.domain = TxDomain(
            chain_id=str(chain.get("chain_id", "voting-local")),
            program_id=self.program_id.hex(),
            schema_version=int(chain.get("schema_version", 1)),
        )

        security = self.config.get("security", {})
        self.policy = TxVerifyPolicy(require_signatures=bool(security.get("require_signatures", True)))
        if not self.policy.require_signatures:
            log.warning("Signature checks disabled; never run this way outside local dev")

        rent = self.config.get("rent", {})
        self.rent = Rent(
            lamports_per_byte_year=int(rent.get("lamports_per_byte_year", 3480)),
            exemption_years=float(rent.get("exemption_years", 2.0)),
        )

        self.store = store if store is not None else open_store(self.config)

        self._lock = threading.RLock()
        self._seen = SeenSet(ttl_sec=int(security.get("seen_tx_ttl_sec", 600)))
        self._receipts: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, env: Union[TxEnvelope, Dict[str, Any]]) -> Tuple[bool, Dict[str, Any]]:
        """
        Apply one signed envelope atomically.

        Returns (ok, receipt). Failures never mutate the arena.
        """
        if isinstance(env, dict):
            env = TxEnvelope.from_dict(env)

        with self._lock:
            ok, receipt = self._apply(env)
            if env.tx_id:
                self._remember(env.tx_id, receipt)

        if ok:
            log.info("tx %s %s ok", env.tx_id[:16], env.instruction)
        else:
            log.warning("tx %s %s rejected: %s", env.tx_id[:16], env.instruction, receipt.get("error"))
        return ok, receipt

    def _apply(self, env: TxEnvelope) -> Tuple[bool, Dict[str, Any]]:
        base = {"tx_id": env.tx_id, "instruction": env.instruction}

        try:
            verify_tx_envelope(self.domain, env, policy=self.policy)
        except TxVerificationError as e:
            return False, {**base, "ok": False, "error": str(e), "code": None, "name": "TxVerificationError"}

        if self._seen.has(env.tx_id):
            err = AlreadyProcessed()
            return False, {**base, "ok": False, **err.to_dict()}
        self._seen.mark(env.tx_id)

        # verification guarantees every listed signer signed (unless dev policy waives it)
        signers = {s.lower() for s in env.signers}

        ctx = program.InstructionContext(
            program_id=self.program_id,
            accounts={k: str(v).lower() for k, v in env.accounts.items()},
            signers=signers,
            staged=StagedAccounts(self.store),
            rent=self.rent,
        )

        try:
            result = program.execute(ctx, env.instruction, env.args)
            ctx.staged.commit()
        except ProgramError as e:
            return False, {**base, "ok": False, **e.to_dict()}

        ts = _now()
        for event in ctx.events:
            self._events.append({**event, "tx_id": env.tx_id, "ts": ts})

        return True, {
            **base,
            "ok": True,
            "signers": sorted(signers),
            "return": result,
            "events": list(ctx.events),
        }

    def _remember(self, tx_id: str, receipt: Dict[str, Any]) -> None:
        # first receipt wins; a replay must not overwrite the original outcome
        if tx_id in self._receipts:
            return
        self._receipts[tx_id] = receipt
        while len(self._receipts) > MAX_RECEIPTS:
            self._receipts.popitem(last=False)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def config_address_hex(self) -> str:
        return config_address(self.program_id).hex()

    def receipt(self, tx_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._receipts.get(tx_id)

    def fetch_config(self) -> Optional[Config]:
        try:
            return program.fetch_config(self.store, self.program_id)
        except AccountNotInitialized:
            return None

    def fetch_proposal(self, proposal_id: int) -> Optional[Proposal]:
        try:
            return program.fetch_proposal(self.store, self.program_id, proposal_id)
        except AccountNotInitialized:
            return None

    def total_proposals(self) -> int:
        return program.total_proposals(self.store, self.program_id)

    def get_proposal(self, proposal_id: int) -> Tuple[str, int]:
        return program.get_proposal(self.store, self.program_id, proposal_id)

    def list_proposals(self) -> List[Proposal]:
        cfg = self.fetch_config()
        if cfg is None:
            return []
        out: List[Proposal] = []
        for pid in range(cfg.total_proposals):
            p = self.fetch_proposal(pid)
            if p is not None:
                out.append(p)
        return out

    def has_voted(self, proposal_id: int, voter_hex: str) -> bool:
        return program.has_voted(self.store, self.program_id, proposal_id, bytes.fromhex(voter_hex))

    def balance(self, pubkey_hex: str) -> int:
        acct = self.store.get(pubkey_hex.lower())
        return int(acct["lamports"]) if acct else 0

    def airdrop(self, pubkey_hex: str, lamports: int) -> int:
        dev = self.config.get("dev", {})
        if not dev.get("faucet_enabled", False):
            raise PermissionError("faucet disabled")
        cap = int(dev.get("max_airdrop_lamports", 0) or 0)
        if cap and int(lamports) > cap:
            raise ValueError(f"airdrop capped at {cap} lamports")
        with self._lock:
            new_balance = bank_airdrop(self.store, pubkey_hex.lower(), lamports)
        log.info("airdrop %d lamports to %s", int(lamports), pubkey_hex[:16])
        return new_balance

    def recent_events(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            events = list(self._events)
        return events[-max(0, int(limit)):] if limit else []

    def close(self) -> None:
        self.store.close()
