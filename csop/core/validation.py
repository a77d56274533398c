"""
Input validation for capability names, storage keys/values and config.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from csop.core.config import STORAGE_KEY_MAX_LENGTH
from csop.core.errors import CapabilityError, ErrorCode

CAPABILITY_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_capability_name(name: Any) -> str:
    if not isinstance(name, str):
        raise CapabilityError(ErrorCode.VALIDATION_ERROR, "Capability name must be a string")
    if not CAPABILITY_NAME_PATTERN.match(name):
        raise CapabilityError(
            ErrorCode.VALIDATION_ERROR,
            f"Invalid capability name: {name!r}",
        )
    return name


def validate_storage_key(key: Any) -> str:
    if not isinstance(key, str):
        raise CapabilityError(ErrorCode.VALIDATION_ERROR, "Key must be a string")
    if not key:
        raise CapabilityError(ErrorCode.VALIDATION_ERROR, "Key is required")
    if len(key) > STORAGE_KEY_MAX_LENGTH:
        raise CapabilityError(
            ErrorCode.VALIDATION_ERROR,
            f"Key length must be 1-{STORAGE_KEY_MAX_LENGTH}, got {len(key)}",
        )
    return key


def validate_storage_value(value: Any) -> str:
    """
    Serialize a value to compact JSON.

    The returned text is what gets stored and what the tiering size is
    measured on.
    """
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise CapabilityError(
            ErrorCode.VALIDATION_ERROR,
            f"Value must be JSON serializable: {exc}",
        ) from exc


def validate_config(config: Optional[Any]) -> Dict[str, Any]:
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise CapabilityError(ErrorCode.VALIDATION_ERROR, "Config must be a mapping")
    return config
