from __future__ import annotations

"""
Crash-safe JSON snapshots of the account arena.

A snapshot file holds

    {"version": 1, "checksum": <sha256 of canonical accounts>, "accounts": {...}}

Saving goes journal marker -> rotate backups -> atomic replace -> drop
marker. Loading walks primary, .bak1, .bak2, ... and returns the first
snapshot whose checksum matches, so a torn or hand-edited primary falls
back to the last good state instead of silently loading garbage.
"""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

PathLike = Union[str, Path]


def canonical_json_bytes(obj: Any) -> bytes:
    """Sorted, compact UTF-8 JSON; the byte form hashed for checksums and tx ids."""
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def accounts_checksum(accounts: Dict[str, Any]) -> str:
    return hashlib.sha256(canonical_json_bytes(accounts)).hexdigest()


def _fsync_dir(dir_path: Path) -> None:
    try:
        fd = os.open(str(dir_path), os.O_DIRECTORY)
    except OSError:
        # O_DIRECTORY is not available everywhere
        return
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp), str(path))
        _fsync_dir(path.parent)
    finally:
        if tmp.exists():
            tmp.unlink()


class AccountSnapshot:
    """One snapshot file plus its rolling backups."""

    def __init__(self, path: PathLike, keep_backups: int = 2) -> None:
        self.path = Path(path)
        self.keep_backups = max(0, int(keep_backups))

    @property
    def journal_path(self) -> Path:
        return self.path.with_name(self.path.name + ".journal")

    def backup_path(self, n: int) -> Path:
        return self.path.with_name(f"{self.path.name}.bak{n}")

    def candidates(self) -> List[Path]:
        return [self.path] + [self.backup_path(n) for n in range(1, self.keep_backups + 1)]

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            obj = json.loads(path.read_bytes().decode("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            log.warning("Unreadable snapshot %s", path)
            return None

        if not isinstance(obj, dict) or obj.get("version") != SNAPSHOT_VERSION:
            log.warning("Snapshot %s has an unknown layout", path)
            return None
        accounts = obj.get("accounts")
        if not isinstance(accounts, dict) or obj.get("checksum") != accounts_checksum(accounts):
            log.warning("Snapshot %s failed its checksum", path)
            return None
        return accounts

    def load_accounts(self) -> Dict[str, Any]:
        """Accounts from the newest intact snapshot; empty when none exists."""
        if self.journal_path.exists():
            log.warning("Journal marker %s found; last save may be incomplete", self.journal_path)

        for p in self.candidates():
            accounts = self._read(p)
            if accounts is not None:
                if p != self.path:
                    log.warning("Recovered accounts from backup %s", p)
                return accounts
        return {}

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _rotate(self) -> None:
        if self.keep_backups == 0:
            return
        for n in range(self.keep_backups, 1, -1):
            older = self.backup_path(n - 1)
            if older.exists():
                os.replace(str(older), str(self.backup_path(n)))
        if self.path.exists():
            os.replace(str(self.path), str(self.backup_path(1)))

    def save_accounts(self, accounts: Dict[str, Any]) -> None:
        payload = {
            "version": SNAPSHOT_VERSION,
            "checksum": accounts_checksum(accounts),
            "accounts": accounts,
        }
        data = canonical_json_bytes(payload)
        atomic_write_bytes(self.journal_path, b"1")
        self._rotate()
        atomic_write_bytes(self.path, data)
        self.journal_path.unlink()
