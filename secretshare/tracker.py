"""Bookkeeping of which resources track which other resources."""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class NamespacedName:
    """Identifies a namespaced resource."""

    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Tracker:
    """Lets "tracking" resources register interest in "tracked" resources.

    All tracking resources can then be looked up for a given tracked
    resource. Safe to use from several threads.
    """

    def __init__(self) -> None:
        self._tracker: dict[NamespacedName, set[NamespacedName]] = {}
        self._lock = threading.Lock()

    def track(self, tracking: NamespacedName, *args: NamespacedName) -> None:
        """Record that ``tracking`` is interested in every resource in ``args``."""
        with self._lock:
            self._tracker.setdefault(tracking, set()).update(args)

    def untrack_all(self, tracking: NamespacedName) -> None:
        """Forget everything ``tracking`` was tracking. Idempotent."""
        with self._lock:
            self._tracker.pop(tracking, None)

    def get_tracking(self, tracked: NamespacedName) -> list[NamespacedName]:
        """Return every tracking resource interested in ``tracked``."""
        with self._lock:
            return [
                tracking
                for tracking, tracked_set in self._tracker.items()
                if tracked in tracked_set
            ]