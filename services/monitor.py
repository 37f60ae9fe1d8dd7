"""
Performance monitoring hooks used by the converter.

The converter only asks three questions: should this input be streamed, how
wide should a sheet batch be, and where to report the final metrics. Any
object with these methods can be injected; ``StaticPerformanceMonitor`` is
the default and answers from configuration alone.
"""

import logging
from collections import deque
from typing import Protocol

from converters.config import (
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_METRICS_HISTORY_SIZE,
    DEFAULT_STREAMING_THRESHOLD_MB,
)

logger = logging.getLogger(__name__)


class PerformanceMonitor(Protocol):
    def should_use_streaming(self, size_bytes: int) -> bool:
        ...

    def get_optimal_batch_size(self, default: int) -> int:
        ...

    def record_metrics(self, metrics) -> None:
        ...


class StaticPerformanceMonitor:
    """Answers from fixed settings and keeps the metrics of the most recent runs."""

    def __init__(self, enable_streaming=False, streaming_threshold_mb=DEFAULT_STREAMING_THRESHOLD_MB,
                 batch_size=None, history_size=DEFAULT_METRICS_HISTORY_SIZE):
        self.enable_streaming = enable_streaming
        self.streaming_threshold_bytes = streaming_threshold_mb * 1024 * 1024
        self.batch_size = batch_size
        self.history = deque(maxlen=history_size)

    def should_use_streaming(self, size_bytes):
        return self.enable_streaming and size_bytes > self.streaming_threshold_bytes

    def get_optimal_batch_size(self, default=DEFAULT_CONCURRENCY_LIMIT):
        return max(1, self.batch_size or default)

    def record_metrics(self, metrics):
        self.history.append(metrics)
        logger.debug("Recorded metrics: %s", metrics)
