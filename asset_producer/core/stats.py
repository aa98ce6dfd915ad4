"""
In-process counters for the asset producer.

Each run records how many raw assets were fetched, how many events were
produced, and why assets or pages were skipped.  Counters are keyed by
metric name plus tags (``site:<id>``, ``reason:<tag>``) and every increment
is also emitted as a DEBUG log line so the values reach the log pipeline.
"""

from __future__ import annotations

import threading
from collections import Counter

from asset_producer.core.logging import get_logger

logger = get_logger(__name__)

# ── Metric names ─────────────────────────────────────────────────────────────

TOTAL_ASSETS: str = "totalassets"
TOTAL_ASSETS_PRODUCED: str = "totalassetsproduced"
ASSET_FETCH_FAILURE: str = "assetfetchfailure"
ASSET_VALIDATION_FAILURE: str = "assetvalidationfailure"
PRODUCER_FAILURE: str = "producerfailure"


def site_tag(site_id: str) -> str:
    return f"site:{site_id}"


def reason_tag(reason: str) -> str:
    return f"reason:{reason}"


class StatsRecorder:
    """Thread-safe accumulator of named, tagged counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Counter[tuple[str, tuple[str, ...]]] = Counter()

    def count(self, name: str, value: float, *tags: str) -> None:
        """Add *value* to the counter identified by *name* and *tags*."""
        key = (name, tuple(sorted(tags)))
        with self._lock:
            self._counts[key] += value
        logger.debug(
            "count %s=%s %s",
            name,
            value,
            ",".join(key[1]),
            extra={"action": "stat"},
        )

    def get(self, name: str, *tags: str) -> float:
        """Return the current total for *name* with exactly *tags*."""
        with self._lock:
            return self._counts.get((name, tuple(sorted(tags))), 0)

    def total(self, name: str) -> float:
        """Return the total for *name* across every tag combination."""
        with self._lock:
            return sum(value for (metric, _), value in self._counts.items() if metric == name)

    def snapshot(self) -> dict[str, float]:
        """Return every counter as ``{"name|tag,tag": value}``."""
        with self._lock:
            return {
                f"{name}|{','.join(tags)}": value
                for (name, tags), value in self._counts.items()
            }
