"""
Capability registry - domain name -> capability instance.

Owned by a Dispatcher. Populated during initialization and read-only
afterwards; registration for an existing domain replaces it.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from csop.core.capability import Capability
from csop.core.observability import get_logger
from csop.core.validation import validate_capability_name

logger = get_logger("registry")


class CapabilityRegistry:

    def __init__(self):
        self._capabilities: Dict[str, Capability] = {}

    def register(self, domain: str, capability: Capability) -> None:
        """
        Register a capability under a domain name.
        Raises CapabilityError (VALIDATION_ERROR) for an invalid name.
        """
        validate_capability_name(domain)
        if domain in self._capabilities:
            logger.info("Replacing capability: %s", domain)
        self._capabilities[domain] = capability
        logger.info("Capability registered: %s", domain)

    def unregister(self, domain: str) -> bool:
        """
        Remove a domain. Returns True if it was registered.
        """
        removed = self._capabilities.pop(domain, None)
        if removed is not None:
            logger.info("Capability unregistered: %s", domain)
        return removed is not None

    def lookup(self, domain: str) -> Optional[Capability]:
        return self._capabilities.get(domain)

    def domains(self) -> List[str]:
        return list(self._capabilities.keys())

    def __contains__(self, domain: object) -> bool:
        return domain in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)
