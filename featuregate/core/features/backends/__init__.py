"""Feature evaluation client implementations."""

from .memory import Evaluation, MemoryFeatureClient

__all__ = [
    "Evaluation",
    "MemoryFeatureClient",
]
