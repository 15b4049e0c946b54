"""
dupemark - first-seen vs duplicate classification for intercepted HTTP traffic.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import ComparisonConfig, ConfigStore, Settings
from .container import DuplicateHighlighter
from .dedup import ClassificationEngine, HistoryReplayer, KeyBuilder, SeenRegistry, build_key
from .protocols import ClassificationDecision, HistoryEntry, HttpRequest

__all__ = [
    "__version__",
    "ClassificationDecision",
    "ClassificationEngine",
    "ComparisonConfig",
    "ConfigStore",
    "DuplicateHighlighter",
    "HistoryEntry",
    "HistoryReplayer",
    "HttpRequest",
    "KeyBuilder",
    "SeenRegistry",
    "Settings",
    "build_key",
]
