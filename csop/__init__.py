"""
CSOP - capability dispatch router.

Callers issue "domain.operation" actions; the dispatcher routes them to
registered capabilities and wraps every call in a uniform envelope.
"""

from csop.core.dispatcher import Dispatcher

__version__ = "0.2.0"

__all__ = ["Dispatcher", "__version__"]
