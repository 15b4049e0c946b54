"""
Classification engine: static-asset rules, fingerprinting and the seen
registry turned into a single per-request decision.

Precedence:
1. Enabled static-asset extension group matches -> STATIC_ASSET, registry untouched
2. Fingerprint first seen -> UNIQUE (inserted into the registry)
3. Fingerprint already seen -> DUPLICATE

With ``disable_duplicate_marking`` the reported DUPLICATE/STATIC_ASSET become
SUPPRESSED; registry effects are the same either way.
"""

import time
from typing import Optional, Tuple

import structlog

from dupemark.config import ComparisonConfig, ConfigStore
from dupemark.observability.metrics import METRICS
from dupemark.protocols import ClassificationDecision, HttpRequest

from .fingerprint import KeyBuilder
from .registry import SeenRegistry

logger = structlog.get_logger(__name__)

IMAGE_EXTENSIONS: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico")
SCRIPT_EXTENSIONS: Tuple[str, ...] = (".js", ".mjs", ".css", ".map")
FONT_MEDIA_EXTENSIONS: Tuple[str, ...] = (
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".mp4",
    ".webm",
    ".ogg",
    ".mp3",
)


def is_static_asset(path: str, config: ComparisonConfig) -> bool:
    """
    Check a path (without query) against the enabled static-asset groups.

    Matching is a case-insensitive suffix test on the whole path.
    """
    lowered = path.lower()
    return (
        (config.static_images and lowered.endswith(IMAGE_EXTENSIONS))
        or (config.static_scripts and lowered.endswith(SCRIPT_EXTENSIONS))
        or (config.static_fonts_media and lowered.endswith(FONT_MEDIA_EXTENSIONS))
    )


class ClassificationEngine:
    """
    Classifies intercepted requests as unique, duplicate or static.

    Safe to call from many threads at once: the config is read as one
    immutable snapshot per call and the registry insert is atomic.
    """

    def __init__(
        self,
        store: ConfigStore,
        registry: SeenRegistry,
        key_builder: Optional[KeyBuilder] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.key_builder = key_builder or KeyBuilder()

    def classify(self, request: HttpRequest, config: Optional[ComparisonConfig] = None) -> ClassificationDecision:
        """
        Classify ``request`` and record first occurrences.

        Args:
            request: The intercepted request
            config: Snapshot to use; defaults to the store's current snapshot

        Returns:
            The decision to report to the host
        """
        start_time = time.perf_counter()
        cfg = config if config is not None else self.store.snapshot()

        decision = self._decide(request, cfg)
        if cfg.disable_duplicate_marking and decision is not ClassificationDecision.UNIQUE:
            decision = ClassificationDecision.SUPPRESSED

        METRICS["classifications_total"].labels(decision=decision.value).inc()
        METRICS["classify_latency_seconds"].observe(time.perf_counter() - start_time)
        logger.debug(
            "Request classified",
            method=request.method,
            host=request.host,
            path=request.path_without_query,
            decision=decision.value,
        )
        return decision

    def _decide(self, request: HttpRequest, cfg: ComparisonConfig) -> ClassificationDecision:
        if is_static_asset(request.path_without_query, cfg):
            return ClassificationDecision.STATIC_ASSET

        fingerprint = self.key_builder.build_key(request, cfg)
        if self.registry.add_if_absent(fingerprint):
            return ClassificationDecision.UNIQUE
        return ClassificationDecision.DUPLICATE

    def fingerprint(self, request: HttpRequest, config: Optional[ComparisonConfig] = None) -> Optional[str]:
        """Return the fingerprint ``classify`` would use, or None for a static asset."""
        cfg = config if config is not None else self.store.snapshot()
        if is_static_asset(request.path_without_query, cfg):
            return None
        return self.key_builder.build_key(request, cfg)
