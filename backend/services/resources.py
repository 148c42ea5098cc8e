from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from models import GeneratedResource

logger = logging.getLogger(__name__)


class ResourceLifecycleManager:
    """
    Owns the current batch of GeneratedResources for one session.

    `replace()` and `clear()` are the only mutation paths. Both run under a lock
    together with the readers, so a reader sees either the old batch (still
    live) or the new one, never a released handle. Every installed resource is
    released exactly once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batch: tuple[GeneratedResource, ...] = ()
        self._seen: set[str] = set()

    def current(self) -> tuple[GeneratedResource, ...]:
        with self._lock:
            return self._batch

    def get(self, resource_id: str) -> GeneratedResource | None:
        with self._lock:
            for resource in self._batch:
                if resource.resource_id == resource_id:
                    return resource
        return None

    def read(self, resource_id: str) -> tuple[GeneratedResource, bytes] | None:
        """Resource and its bytes, read under the lock so a concurrent clear cannot interleave."""
        with self._lock:
            for resource in self._batch:
                if resource.resource_id == resource_id:
                    return resource, resource.data
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._batch)

    def replace(self, new_batch: Iterable[GeneratedResource]) -> None:
        incoming = tuple(new_batch)
        with self._lock:
            ids = [r.resource_id for r in incoming]
            if len(set(ids)) != len(ids) or self._seen.intersection(ids) or any(r.released for r in incoming):
                raise ValueError("Resources may only be installed once and must not be released")
            previous = self._batch
            self._batch = incoming
            self._seen.update(ids)
            released = self._release_all(previous)
        logger.info("[resources] Installed %d resource(s), released %d", len(incoming), released)

    def clear(self) -> int:
        with self._lock:
            previous = self._batch
            self._batch = ()
            released = self._release_all(previous)
        if released:
            logger.info("[resources] Cleared %d resource(s)", released)
        return released

    @staticmethod
    def _release_all(batch: tuple[GeneratedResource, ...]) -> int:
        for resource in batch:
            resource.release()
        return len(batch)
