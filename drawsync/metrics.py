"""In-process counters and duration samples for sync runs."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Dict, List, Mapping, Tuple

LOGGER = logging.getLogger(__name__)

RUNS_TOTAL = "draw_sync_runs_total"
DRAWS_UPSERTED_TOTAL = "draw_sync_draws_upserted_total"
DURATION_SECONDS = "draw_sync_duration_seconds"

MetricKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def _key(name: str, tags: Mapping[str, str]) -> MetricKey:
    return name, tuple(sorted((str(k), str(v)) for k, v in tags.items()))


class SyncMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[MetricKey, float] = defaultdict(float)
        self._samples: Dict[MetricKey, List[float]] = defaultdict(list)

    def increment(self, name: str, value: float = 1, **tags: str) -> None:
        with self._lock:
            self._counters[_key(name, tags)] += value
        LOGGER.debug("metric %s += %s %s", name, value, tags)

    def observe(self, name: str, value: float, **tags: str) -> None:
        with self._lock:
            self._samples[_key(name, tags)].append(value)
        LOGGER.debug("metric %s observe %.3f %s", name, value, tags)

    def record_run(self, game: str, trigger: str, status: str, upserted: int, duration_seconds: float) -> None:
        tags = {"game": game, "trigger": trigger, "status": status}
        self.increment(RUNS_TOTAL, 1, **tags)
        self.increment(DRAWS_UPSERTED_TOTAL, upserted, **tags)
        self.observe(DURATION_SECONDS, duration_seconds, **tags)

    def counter(self, name: str, **tags: str) -> float:
        with self._lock:
            return self._counters.get(_key(name, tags), 0.0)

    def samples(self, name: str, **tags: str) -> List[float]:
        with self._lock:
            return list(self._samples.get(_key(name, tags), []))

    def snapshot(self) -> Dict[str, Dict[MetricKey, object]]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "samples": {k: list(v) for k, v in self._samples.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._samples.clear()


METRICS = SyncMetrics()

__all__ = ["SyncMetrics", "METRICS", "RUNS_TOTAL", "DRAWS_UPSERTED_TOTAL", "DURATION_SECONDS"]
