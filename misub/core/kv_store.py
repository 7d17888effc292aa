"""
Key-value stores holding the settings object, subscription list and profile list.

Design goals:
- Local-first (works in a container and on a server).
- No external Python dependencies (stdlib sqlite3).
- One JSON document per key; the request pipeline only ever reads.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

KV_KEY_SETTINGS = "worker_settings_v1"
KV_KEY_SUBS = "misub_subscriptions_v1"
KV_KEY_PROFILES = "misub_profiles_v1"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SqliteKVStore:
    def __init__(self, data_dir: Path):
        self._lock = RLock()
        self._db_path = Path(data_dir) / "misub.db"
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._migrate()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _migrate(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)"
            )
            row = self._conn.execute("SELECT version FROM schema_version").fetchone()
            if not row:
                self._conn.execute("INSERT INTO schema_version(version) VALUES (1)")

            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            row = self._conn.execute("SELECT value_json FROM kv WHERE key = ?", (key,)).fetchone()
        if not row:
            return None
        try:
            return json.loads(row["value_json"])
        except (TypeError, ValueError) as exc:
            logger.warning("Stored value for %s is not valid JSON: %s", key, exc)
            return None

    def put(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO kv(key, value_json, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value_json = excluded.value_json, updated_at = excluded.updated_at
                """,
                (key, payload, _utc_now_iso()),
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class MemoryKVStore:
    """Dict-backed store for tests and throwaway deployments."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._lock = RLock()
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            # Callers get a snapshot they cannot mutate back into the store.
            return copy.deepcopy(self._data.get(key))

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)
