# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Lock-guarded collection of scrape unit results."""

import threading

from ..models.metric import CloudwatchMetricResult
from ..models.resource import TaggedResource


class ResultAggregator:
    """
    Collects the output of concurrently running scrape units.

    Owns the two output collections (resource batches and metric results)
    behind a single lock. Every append is one critical section and no I/O
    happens while the lock is held. Results are kept in completion order;
    callers must correlate metric results through their JobContext, not by
    index.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resources: list[list[TaggedResource]] = []
        self._metrics: list[CloudwatchMetricResult] = []

    def add_resources_and_metrics(
        self,
        resources: list[TaggedResource],
        result: CloudwatchMetricResult,
    ) -> None:
        """Append one discovery unit's resource batch and metric result together."""
        batch = list(resources)
        with self._lock:
            self._resources.append(batch)
            self._metrics.append(result)

    def add_metrics(self, result: CloudwatchMetricResult) -> None:
        """Append one metric result."""
        with self._lock:
            self._metrics.append(result)

    def snapshot(self) -> tuple[list[list[TaggedResource]], list[CloudwatchMetricResult]]:
        """Return copies of both collections."""
        with self._lock:
            return [list(batch) for batch in self._resources], list(self._metrics)

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)
