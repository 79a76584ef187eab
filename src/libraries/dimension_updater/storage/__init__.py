"""
Storage collaborators that read snapshots and commit change sets.
"""

from .base import DimensionReader, DimensionWriter, DimensionStore
from .memory_store import InMemoryDimensionStore
from .delta_store import DeltaDimensionStore

__all__ = [
    "DimensionReader",
    "DimensionWriter",
    "DimensionStore",
    "InMemoryDimensionStore",
    "DeltaDimensionStore"
]
