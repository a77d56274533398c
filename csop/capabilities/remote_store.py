"""
Remote storage tier.

HttpRemoteStore talks to a SQL-over-HTTP endpoint:

    POST <url>/execute
    Authorization: Bearer <auth_token>
    {"sql": "...", "args": [...]}

and expects {"rows": [[col, ...], ...]} back. The remote table is
`storage(key TEXT PRIMARY KEY, data TEXT)` and is assumed to exist.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, List, Optional

import requests

from csop.core.config import REMOTE_REQUEST_TIMEOUT_SECONDS
from csop.core.errors import CapabilityError, ErrorCode
from csop.core.observability import get_logger

logger = get_logger("storage.remote")


@dataclass(frozen=True)
class RemoteConfig:
    url: str
    auth_token: str
    timeout_s: float = REMOTE_REQUEST_TIMEOUT_SECONDS

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RemoteConfig":
        if not isinstance(raw, dict):
            raise ValueError("Remote storage config must be a mapping")
        url = str(raw.get("url") or "").strip()
        token = str(raw.get("auth_token") or "").strip()
        if not url or not token:
            raise ValueError("Remote storage configuration incomplete: 'url' and 'auth_token' are required")
        return cls(
            url=url.rstrip("/"),
            auth_token=token,
            timeout_s=float(raw.get("timeout_s", REMOTE_REQUEST_TIMEOUT_SECONDS)),
        )


class RemoteStore(ABC):
    """Interface the storage capability needs from a remote tier."""

    @abstractmethod
    async def put(self, key: str, data: str) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Raw JSON text for key, or None on a miss."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class HttpRemoteStore(RemoteStore):

    def __init__(self, config: RemoteConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _execute(self, sql: str, args: List[Any]) -> List[List[Any]]:
        try:
            resp = self.session.post(
                f"{self.config.url}/execute",
                json={"sql": sql, "args": args},
                headers={"Authorization": f"Bearer {self.config.auth_token}"},
                timeout=self.config.timeout_s,
            )
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            raise CapabilityError(ErrorCode.REMOTE_STORE_ERROR, f"Remote store request failed: {exc}") from exc
        except ValueError as exc:
            raise CapabilityError(ErrorCode.REMOTE_STORE_ERROR, "Remote store returned invalid JSON") from exc

        rows = body.get("rows", []) if isinstance(body, dict) else []
        return rows if isinstance(rows, list) else []

    async def _run(self, sql: str, args: List[Any]) -> List[List[Any]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self._execute, sql, args))

    async def put(self, key: str, data: str) -> None:
        await self._run("INSERT OR REPLACE INTO storage (key, data) VALUES (?, ?)", [key, data])
        logger.debug("Remote put: %s", key)

    async def get(self, key: str) -> Optional[str]:
        rows = await self._run("SELECT data FROM storage WHERE key = ?", [key])
        if not rows or not rows[0]:
            return None
        return rows[0][0]

    async def delete(self, key: str) -> None:
        await self._run("DELETE FROM storage WHERE key = ?", [key])
        logger.debug("Remote delete: %s", key)
