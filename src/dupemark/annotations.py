"""
Display vocabulary for classification decisions and ready-made sinks.
"""

from __future__ import annotations

import threading
from collections import Counter
from enum import Enum
from typing import Callable, Dict, List, Tuple

from dupemark.protocols import ClassificationDecision


class HighlightColor(Enum):
    """Row highlight a host paints for a decision."""

    CYAN = "cyan"
    GRAY = "gray"
    NONE = "none"


DECISION_COLORS: Dict[ClassificationDecision, HighlightColor] = {
    ClassificationDecision.UNIQUE: HighlightColor.CYAN,
    ClassificationDecision.DUPLICATE: HighlightColor.GRAY,
    ClassificationDecision.STATIC_ASSET: HighlightColor.GRAY,
    ClassificationDecision.SUPPRESSED: HighlightColor.NONE,
}


def color_for(decision: ClassificationDecision) -> HighlightColor:
    return DECISION_COLORS[decision]


class HighlightSink:
    """Adapts a host callback ``setter(request_id, color)`` to AnnotationSink."""

    def __init__(self, setter: Callable[[int | str, HighlightColor], None]) -> None:
        self._setter = setter

    def report(self, request_id: int | str, decision: ClassificationDecision) -> None:
        self._setter(request_id, color_for(decision))


class RecordingSink:
    """Keeps every reported decision in arrival order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records: List[Tuple[int | str, ClassificationDecision]] = []

    def report(self, request_id: int | str, decision: ClassificationDecision) -> None:
        with self._lock:
            self.records.append((request_id, decision))

    def decisions(self) -> List[ClassificationDecision]:
        with self._lock:
            return [decision for _, decision in self.records]

    def summary(self) -> Dict[ClassificationDecision, int]:
        with self._lock:
            return dict(Counter(decision for _, decision in self.records))

    def clear(self) -> None:
        with self._lock:
            self.records.clear()
