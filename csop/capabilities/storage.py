"""
Storage capability - size-based tiering between a local and a remote store.

Operations: storage.save, storage.get, storage.delete, storage.list

Tiering rules (recomputed on every save, never sticky):
- serialized size < threshold  -> local
- otherwise, remote configured -> remote
- otherwise                    -> local, with a warning

A re-save under the same key may land on a different tier than the
previous copy. Old copies are not migrated, which is why get checks
local first and then remote.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from csop.core.capability import Capability, Handler
from csop.core.config import LOCAL_DB_PATH, STORAGE_THRESHOLD_BYTES
from csop.core.errors import CapabilityError, ErrorCode
from csop.core.observability import get_logger
from csop.core.validation import validate_storage_key, validate_storage_value
from csop.capabilities.local_store import SqliteLocalStore
from csop.capabilities.remote_store import HttpRemoteStore, RemoteConfig, RemoteStore

logger = get_logger("storage")

TIER_LOCAL = "local"
TIER_REMOTE = "remote"


def format_bytes(size: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


class StorageCapability(Capability):

    def __init__(
        self,
        local_store: Optional[SqliteLocalStore] = None,
        remote_store: Optional[RemoteStore] = None,
        threshold_bytes: int = STORAGE_THRESHOLD_BYTES,
    ):
        super().__init__()
        self.local_store = local_store
        self.remote_store = remote_store
        self.threshold_bytes = threshold_bytes

    async def init(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Open the local store and attach the remote tier if configured.

        Config keys: threshold_bytes, db_path, remote {url, auth_token, timeout_s}.
        """
        await super().init(config)
        if self.config.get("threshold_bytes"):
            self.threshold_bytes = int(self.config["threshold_bytes"])

        if self.local_store is None:
            self.local_store = SqliteLocalStore(Path(self.config.get("db_path") or LOCAL_DB_PATH))
        await self.local_store.open()

        if self.config.get("remote"):
            self.configure_remote(self.config["remote"])

        logger.info("Storage ready (threshold %s)", format_bytes(self.threshold_bytes))

    def configure_remote(self, remote: Union[RemoteStore, RemoteConfig, Dict[str, Any]]) -> None:
        """Attach the remote tier. Accepts a store, a RemoteConfig or a raw dict."""
        if isinstance(remote, RemoteStore):
            self.remote_store = remote
        else:
            if isinstance(remote, dict):
                remote = RemoteConfig.from_dict(remote)
            self.remote_store = HttpRemoteStore(remote)
        logger.info("Remote storage configured")

    @property
    def remote_configured(self) -> bool:
        return self.remote_store is not None

    def operations(self) -> Mapping[str, Handler]:
        return {
            "save": self.save,
            "get": self.get,
            "delete": self.delete,
            "list": self.list_keys,
        }

    def _local(self) -> SqliteLocalStore:
        if self.local_store is None:
            raise CapabilityError(ErrorCode.EXECUTION_FAILED, "Storage capability not initialized")
        return self.local_store

    # --- Operations ---

    async def save(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Store payload['data'] (or payload['value']) under payload['key']."""
        key = validate_storage_key(payload.get("key"))
        value = payload["data"] if "data" in payload else payload.get("value")
        data = validate_storage_value(value)
        size = len(data.encode("utf-8"))

        if size < self.threshold_bytes:
            await self._local().put(key, data, size)
            return {"key": key, "tier": TIER_LOCAL, "sizeBytes": size}

        if self.remote_store is not None:
            await self.remote_store.put(key, data)
            return {"key": key, "tier": TIER_REMOTE, "sizeBytes": size}

        logger.warning(
            "Data size %s exceeds threshold %s but remote storage is not configured; storing locally",
            format_bytes(size), format_bytes(self.threshold_bytes),
        )
        await self._local().put(key, data, size)
        return {
            "key": key,
            "tier": TIER_LOCAL,
            "sizeBytes": size,
            "warning": "Large data stored locally: remote storage not configured",
        }

    async def get(self, payload: Dict[str, Any]) -> Any:
        key = validate_storage_key(payload.get("key"))
        local = self._local()

        try:
            raw = await local.get(key)
            if raw is not None:
                return json.loads(raw)
        except Exception as exc:
            logger.warning("Local store read failed for %s: %s", key, exc)

        if self.remote_store is not None:
            try:
                raw = await self.remote_store.get(key)
                if raw is not None:
                    return json.loads(raw)
            except Exception as exc:
                logger.warning("Remote store read failed for %s: %s", key, exc)

        raise CapabilityError(ErrorCode.KEY_NOT_FOUND, f'Key "{key}" not found')

    async def delete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        key = validate_storage_key(payload.get("key"))

        await self._local().delete(key)
        if self.remote_store is not None:
            await self.remote_store.delete(key)

        return {"deleted": True, "key": key}

    async def list_keys(self, payload: Optional[Dict[str, Any]] = None) -> List[str]:
        """Local-tier keys only, optionally filtered by payload['prefix']."""
        prefix = (payload or {}).get("prefix") or ""
        keys = await self._local().keys()
        if prefix:
            return [k for k in keys if k.startswith(prefix)]
        return keys
