"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cross-consumer cache invalidation channel.
"""

from .memory import InMemoryInvalidationBus
from .types import (
    ChangeOperation,
    InvalidationBus,
    InvalidationEvent,
    InvalidationHandler,
    Unsubscribe,
)

__all__ = [
    "ChangeOperation",
    "InvalidationBus",
    "InvalidationEvent",
    "InvalidationHandler",
    "InMemoryInvalidationBus",
    "Unsubscribe",
]
