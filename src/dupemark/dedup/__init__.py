"""
Request deduplication for dupemark.

- KeyBuilder: request + comparison snapshot -> canonical fingerprint
- SeenRegistry: sharded concurrent insert-if-absent set of fingerprints
- ClassificationEngine: static rules + registry -> ClassificationDecision
- HistoryReplayer: clear the registry and re-classify a stored history
"""

from .engine import ClassificationEngine, is_static_asset
from .fingerprint import KeyBuilder, build_key
from .registry import SeenRegistry
from .replay import HistoryReplayer

__all__ = [
    "ClassificationEngine",
    "HistoryReplayer",
    "KeyBuilder",
    "SeenRegistry",
    "build_key",
    "is_static_asset",
]
