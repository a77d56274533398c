"""
Persistent local key/value store backed by SQLite.
Connection per call, closed on exit; blocking work runs in the default executor.
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Any, Callable, List, Optional

from csop.core.observability import get_logger

logger = get_logger("storage.local")


class SqliteLocalStore:

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._ready = False

    # --- Connection handling ---

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._get_conn()) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    updated_at TEXT NOT NULL
                );
            """)
            conn.commit()
        self._ready = True
        logger.info("Local store initialized at %s", self.db_path)

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args))

    # --- Sync operations ---

    def _put(self, key: str, data: str, size_bytes: int) -> None:
        with closing(self._get_conn()) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, data, size_bytes, updated_at) VALUES (?, ?, ?, ?)",
                (key, data, size_bytes, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def _get(self, key: str) -> Optional[str]:
        with closing(self._get_conn()) as conn:
            row = conn.execute("SELECT data FROM kv WHERE key = ?", (key,)).fetchone()
        return row["data"] if row else None

    def _delete(self, key: str) -> bool:
        with closing(self._get_conn()) as conn:
            cur = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
            return cur.rowcount > 0

    def _keys(self) -> List[str]:
        with closing(self._get_conn()) as conn:
            rows = conn.execute("SELECT key FROM kv ORDER BY key ASC").fetchall()
        return [r["key"] for r in rows]

    # --- Async API ---

    async def open(self) -> None:
        if not self._ready:
            await self._run(self._init_db)

    async def put(self, key: str, data: str, size_bytes: int) -> None:
        await self._run(self._put, key, data, size_bytes)

    async def get(self, key: str) -> Optional[str]:
        """Raw JSON text for key, or None on a miss."""
        return await self._run(self._get, key)

    async def delete(self, key: str) -> bool:
        return await self._run(self._delete, key)

    async def keys(self) -> List[str]:
        return await self._run(self._keys)
