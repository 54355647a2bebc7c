#!/usr/bin/env python3
"""
SQLiteAccountStore: persistent account arena for the voting node.
-------------------------------------------------------------------
- One row per account, keyed by address (PRIMARY KEY).
- A commit is a single SQL transaction: creates are plain INSERTs, so a
  duplicate address aborts the whole batch with AccountAlreadyInUse.
- Used only when config persistence.driver == "sqlite".
"""

import json
import logging
import os
import sqlite3
import threading
from typing import Dict, List, Optional

from ..voting_runtime.account_store import Account, AccountStore
from ..voting_runtime.errors import AccountAlreadyInUse, AccountNotInitialized

log = logging.getLogger(__name__)


class SQLiteAccountStore(AccountStore):
    def __init__(self, db_path: str):
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self._lock = threading.RLock()
        self.conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    # -----------------------------------------------------
    # Core schema
    # -----------------------------------------------------
    def _init_schema(self) -> None:
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                address TEXT PRIMARY KEY,
                lamports INTEGER NOT NULL DEFAULT 0,
                owner TEXT NOT NULL,
                data TEXT,
                ts INTEGER DEFAULT (strftime('%s','now'))
            )
            """
        )

    # -----------------------------------------------------
    # Reads
    # -----------------------------------------------------
    def get(self, address: str) -> Optional[Account]:
        with self._lock:
            row = self.conn.execute(
                "SELECT lamports, owner, data FROM accounts WHERE address=?", (address,)
            ).fetchone()
        if row is None:
            return None
        data = json.loads(row["data"]) if row["data"] is not None else None
        return {"lamports": int(row["lamports"]), "owner": row["owner"], "data": data}

    def addresses(self) -> List[str]:
        with self._lock:
            rows = self.conn.execute("SELECT address FROM accounts ORDER BY address ASC").fetchall()
        return [r["address"] for r in rows]

    # -----------------------------------------------------
    # Atomic commit
    # -----------------------------------------------------
    def commit(self, creates: Dict[str, Account], updates: Dict[str, Account]) -> None:
        with self._lock:
            cur = self.conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            try:
                for addr, acct in creates.items():
                    try:
                        cur.execute(
                            "INSERT INTO accounts (address, lamports, owner, data) VALUES (?,?,?,?)",
                            (addr, int(acct["lamports"]), acct["owner"], _dump(acct.get("data"))),
                        )
                    except sqlite3.IntegrityError as e:
                        raise AccountAlreadyInUse(addr) from e
                for addr, acct in updates.items():
                    cur.execute(
                        "UPDATE accounts SET lamports=?, owner=?, data=? WHERE address=?",
                        (int(acct["lamports"]), acct["owner"], _dump(acct.get("data")), addr),
                    )
                    if cur.rowcount != 1:
                        raise AccountNotInitialized(f"cannot update missing account {addr}")
            except Exception:
                cur.execute("ROLLBACK")
                raise
            cur.execute("COMMIT")

    # -----------------------------------------------------
    # Maintenance
    # -----------------------------------------------------
    def close(self) -> None:
        with self._lock:
            self.conn.close()


def _dump(data) -> Optional[str]:
    if data is None:
        return None
    return json.dumps(data, sort_keys=True, separators=(",", ":"))
