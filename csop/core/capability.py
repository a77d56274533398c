"""
Capability interface.

A capability is a named unit of functionality exposing asynchronous
operations. Operations are resolved through an explicit name -> handler
table, never through attribute reflection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

Handler = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


class Capability(ABC):
    """
    Base class for all capabilities.

    Subclasses implement operations() and may override init().
    """

    def __init__(self):
        self.config: Dict[str, Any] = {}

    async def init(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Called once before the capability is registered."""
        self.config = dict(config or {})

    @abstractmethod
    def operations(self) -> Mapping[str, Handler]:
        """Return the operation table: operation name -> handler."""

    def get_operation(self, name: str) -> Optional[Handler]:
        """
        Resolve an operation by name.
        Returns None if the operation is absent or not callable.
        """
        handler = self.operations().get(name)
        if handler is None or not callable(handler):
            return None
        return handler


class FunctionCapability(Capability):
    """
    Capability built from a plain mapping of handlers.

    Example:
        cap = FunctionCapability({"ping": lambda payload: "pong"})
    """

    def __init__(self, handlers: Mapping[str, Handler]):
        super().__init__()
        self._handlers: Dict[str, Handler] = dict(handlers)

    def operations(self) -> Mapping[str, Handler]:
        return self._handlers
