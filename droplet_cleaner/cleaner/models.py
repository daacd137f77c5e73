"""
Data models for the cleanup pass and its counters.
"""

import threading
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class CountersSnapshot:
    removed: int = 0
    stop_errors: int = 0
    delete_errors: int = 0


class CleanerCounters:
    """
    Process-lifetime counters shared with the metrics endpoint.

    Increments come from the cleanup pass, reads from the metrics thread, so
    both go through the same lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._removed = 0
        self._stop_errors = 0
        self._delete_errors = 0

    def inc_removed(self) -> None:
        with self._lock:
            self._removed += 1

    def inc_stop_errors(self) -> None:
        with self._lock:
            self._stop_errors += 1

    def inc_delete_errors(self) -> None:
        with self._lock:
            self._delete_errors += 1

    def snapshot(self) -> CountersSnapshot:
        with self._lock:
            return CountersSnapshot(
                removed=self._removed,
                stop_errors=self._stop_errors,
                delete_errors=self._delete_errors,
            )


@dataclass
class CleanupResult:
    """Outcome of a single cleanup pass."""
    hanging: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    stop_failed: List[str] = field(default_factory=list)
    delete_failed: List[str] = field(default_factory=list)
    pruned_machines: List[str] = field(default_factory=list)
    # No droplet old enough to reconcile; the zombie pass did not run either
    skipped: bool = False

    @property
    def removed_count(self) -> int:
        return len(self.removed)
