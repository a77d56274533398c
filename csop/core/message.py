"""
Per-dispatch message construction and action parsing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from csop.core.config import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_MS, ID_PREFIX


def generate_id() -> str:
    return ID_PREFIX + str(uuid.uuid4())


@dataclass(frozen=True)
class MessageOptions:
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES

    def merge(self, overrides: Optional[Mapping[str, Any]]) -> "MessageOptions":
        """
        Apply caller options over these defaults.

        Unknown keys are ignored. Raises ValueError on negative or
        non-numeric values. max_retries is truncated to an int; timeout_ms
        keeps its fraction.
        """
        if not overrides:
            return self
        changes: Dict[str, float] = {}
        for name in ("timeout_ms", "max_retries"):
            if name not in overrides or overrides[name] is None:
                continue
            value = overrides[name]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Option '{name}' must be a number, got {value!r}")
            if value < 0:
                raise ValueError(f"Option '{name}' must not be negative, got {value}")
            changes[name] = int(value) if name == "max_retries" else value
        return replace(self, **changes)


@dataclass(frozen=True)
class Message:
    action: str
    payload: Dict[str, Any]
    options: MessageOptions = field(default_factory=MessageOptions)
    id: str = field(default_factory=generate_id)


def parse_action(action: Any) -> Optional[Tuple[str, str]]:
    """
    Split "domain.operation" on the first dot.

    Returns None when there is no dot or either half is empty.
    """
    if not isinstance(action, str):
        return None
    domain, sep, operation = action.partition(".")
    if not sep or not domain or not operation:
        return None
    return domain, operation
