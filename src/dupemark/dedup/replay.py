"""
Full-history replay through the classification engine.
"""

import time
from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars

from dupemark.observability.metrics import METRICS
from dupemark.protocols import AnnotationSink, HistoryProvider

from .engine import ClassificationEngine

logger = structlog.get_logger(__name__)


class HistoryReplayer:
    """
    Re-classifies a stored history after clearing the seen registry.

    Uses the engine's own registry, so live classification may continue while
    a replay runs.
    """

    def __init__(self, engine: ClassificationEngine, sink: AnnotationSink) -> None:
        self.engine = engine
        self.sink = sink

    def replay_all(self, provider: HistoryProvider) -> int:
        """
        Clear the registry and classify every history entry in order.

        Args:
            provider: Source of past requests, oldest first

        Returns:
            Number of entries processed
        """
        start_time = time.time()
        count = 0

        with bound_contextvars(replay_id=str(uuid4())):
            self.engine.registry.clear(reason="replay")
            for entry in provider.history():
                decision = self.engine.classify(entry.request)
                self.sink.report(entry.request_id, decision)
                count += 1

            METRICS["replays_total"].inc()
            logger.info("History replay complete", entries=count, duration_ms=(time.time() - start_time) * 1000)

        return count
