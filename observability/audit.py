from __future__ import annotations

import json
import os
import sqlite3
import threading
import time
from typing import Any, Dict, List, Optional


class AuditLog:
    """
    Optional SQLite audit log of transfer pipeline outcomes.

    This is OFF by default. Enable by setting `AUDIT_DB_PATH` (or `WALLET_AUDIT_DB_PATH`),
    or pass `db_path` explicitly.

    IMPORTANT:
    - Never store key material or signatures. Only a summarized view of the call is kept.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._explicit_path = db_path

    def enabled(self) -> bool:
        return bool(self._db_path())

    def append(
        self,
        *,
        ts_ms: int,
        operation: str,
        ok: bool,
        address: str,
        nonce: int | None = None,
        tx_hash: str | None = None,
        error_code: str | None = None,
        summary: Dict[str, Any] | None = None,
    ) -> None:
        conn = self._get_conn()
        if conn is None:
            return
        payload = json.dumps(summary or {}, sort_keys=True, default=str)
        with self._lock:
            conn.execute(
                """
                INSERT INTO audit_events(
                    ts_ms, operation, ok, address, nonce, tx_hash, error_code, summary_json
                )
                VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(ts_ms),
                    str(operation),
                    1 if ok else 0,
                    str(address),
                    None if nonce is None else int(nonce),
                    tx_hash,
                    error_code,
                    payload,
                ),
            )
            conn.commit()

    def recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        conn = self._get_conn()
        if conn is None:
            return []
        with self._lock:
            rows = conn.execute(
                """
                SELECT ts_ms, operation, ok, address, nonce, tx_hash, error_code, summary_json
                FROM audit_events ORDER BY id DESC LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        return [
            {
                "ts_ms": r[0],
                "operation": r[1],
                "ok": bool(r[2]),
                "address": r[3],
                "nonce": r[4],
                "tx_hash": r[5],
                "error_code": r[6],
                "summary": json.loads(r[7]),
            }
            for r in rows
        ]

    def _db_path(self) -> str:
        if self._explicit_path:
            return self._explicit_path
        return (os.getenv("WALLET_AUDIT_DB_PATH") or os.getenv("AUDIT_DB_PATH") or "").strip()

    def _get_conn(self) -> Optional[sqlite3.Connection]:
        path = self._db_path()
        if not path:
            return None
        with self._lock:
            if self._conn is None:
                self._conn = sqlite3.connect(path, check_same_thread=False)
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS audit_events(
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        ts_ms INTEGER NOT NULL,
                        operation TEXT NOT NULL,
                        ok INTEGER NOT NULL,
                        address TEXT NOT NULL,
                        nonce INTEGER,
                        tx_hash TEXT,
                        error_code TEXT,
                        summary_json TEXT NOT NULL
                    )
                    """
                )
                self._conn.commit()
            return self._conn


def now_ms() -> int:
    return int(time.time() * 1000)
