"""
Sharded seen-fingerprint registry.

The one piece of mutable state shared between live classification and
history replay. It supports only an atomic insert-if-absent and a clear:

- Fingerprints are spread over N shards by hash, each shard a plain set
  guarded by its own lock, so unrelated classifications do not serialize
- ``clear()`` takes every shard lock in index order
- Entries never expire; the registry lives until the process exits
"""

import hashlib
import threading
from typing import Iterator, List, Set

import structlog

from dupemark.observability.metrics import METRICS

logger = structlog.get_logger(__name__)


class SeenRegistry:
    """Concurrent set of fingerprints already classified Unique."""

    def __init__(self, num_shards: int = 16) -> None:
        if num_shards < 1:
            raise ValueError("num_shards must be at least 1")
        self.num_shards = num_shards
        self._shards: List[Set[str]] = [set() for _ in range(num_shards)]
        self._shard_locks = [threading.Lock() for _ in range(num_shards)]

        # Statistics, kept per shard and guarded by that shard's lock
        self._inserts = [0] * num_shards
        self._hits = [0] * num_shards
        self._clears = 0

    def _shard_index(self, fingerprint: str) -> int:
        digest = hashlib.blake2b(fingerprint.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big") % self.num_shards

    def add_if_absent(self, fingerprint: str) -> bool:
        """
        Insert ``fingerprint`` unless already present.

        Returns:
            True if this call inserted it (first occurrence), False otherwise
        """
        index = self._shard_index(fingerprint)
        with self._shard_locks[index]:
            shard = self._shards[index]
            if fingerprint in shard:
                self._hits[index] += 1
                return False
            shard.add(fingerprint)
            self._inserts[index] += 1
            METRICS["registry_size"].inc()
        return True

    def clear(self, reason: str = "manual") -> None:
        """Drop every fingerprint."""
        for lock in self._shard_locks:
            lock.acquire()
        try:
            for shard in self._shards:
                shard.clear()
            self._clears += 1
            METRICS["registry_size"].set(0)
        finally:
            for lock in reversed(self._shard_locks):
                lock.release()

        METRICS["registry_clears_total"].labels(reason=reason).inc()
        logger.info("Seen registry cleared", reason=reason)

    def __contains__(self, fingerprint: object) -> bool:
        if not isinstance(fingerprint, str):
            return False
        index = self._shard_index(fingerprint)
        with self._shard_locks[index]:
            return fingerprint in self._shards[index]

    def __len__(self) -> int:
        total = 0
        for index, shard in enumerate(self._shards):
            with self._shard_locks[index]:
                total += len(shard)
        return total

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def snapshot(self) -> Set[str]:
        """Return a copy of the current membership."""
        members: Set[str] = set()
        for index, shard in enumerate(self._shards):
            with self._shard_locks[index]:
                members.update(shard)
        return members

    def get_stats(self) -> dict:
        """Get registry statistics."""
        inserts = 0
        hits = 0
        for index in range(self.num_shards):
            with self._shard_locks[index]:
                inserts += self._inserts[index]
                hits += self._hits[index]
        return {
            "size": len(self),
            "num_shards": self.num_shards,
            "inserts": inserts,
            "hits": hits,
            "clears": self._clears,
        }
