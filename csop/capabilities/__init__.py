"""
Capability package - built-in capabilities.
"""

from __future__ import annotations

from typing import Dict

from csop.core.capability import Capability
from csop.capabilities.storage import StorageCapability


def create_default_capabilities() -> Dict[str, Capability]:
    """
    Built-in capabilities keyed by domain.
    Dispatcher.init() initializes and registers these.
    """
    return {
        "storage": StorageCapability(),
    }
