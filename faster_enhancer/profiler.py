"""Run statistics collection and profiling utilities.

This module provides the thread-safe recorder that inference workers and the
coordinator use to build ``RunStatistics``, plus helpers for timing calls and
managing CUDA memory.
"""

import threading
import time
from contextlib import contextmanager
from typing import Set

import torch

from .data_models import RunStatistics


class RunProfiler:
    """Collects statistics for a single run from multiple worker threads.

    All counter updates are serialized through one lock. ``finalize`` returns
    a snapshot that is no longer touched by the profiler.
    """

    def __init__(self, segments_total: int = 0, audio_duration: float = 0.0):
        """Initialize run profiler.

        Args:
            segments_total: Number of segments in the run
            audio_duration: Input audio duration in seconds
        """
        self._lock = threading.Lock()
        self._stats = RunStatistics(
            segments_total=segments_total,
            per_segment_durations=[0.0] * segments_total,
            audio_duration=audio_duration,
        )
        self._retried: Set[int] = set()
        self._start_time = None

    def start(self):
        """Mark the beginning of the run."""
        self._start_time = time.perf_counter()

    def record_retry(self, segment_index: int):
        """Record one retry; a segment counts once towards segments_retried."""
        with self._lock:
            self._stats.retry_attempts += 1
            if segment_index not in self._retried:
                self._retried.add(segment_index)
                self._stats.segments_retried += 1

    def record_failure(self, segment_index: int):
        """Record a segment whose retries were exhausted."""
        with self._lock:
            self._stats.segments_failed += 1

    def record_duration(self, segment_index: int, duration: float):
        """Record the inference time of one segment in seconds."""
        with self._lock:
            durations = self._stats.per_segment_durations
            if segment_index >= len(durations):
                durations.extend([0.0] * (segment_index + 1 - len(durations)))
            durations[segment_index] = duration

    def record_degraded(self, segment_index: int):
        """Record a segment that was merged without enhancement."""
        with self._lock:
            self._stats.degraded_segments.append(segment_index)

    def finalize(self) -> RunStatistics:
        """Stop the clock and return a copy of the collected statistics."""
        with self._lock:
            if self._start_time is not None:
                self._stats.total_duration = time.perf_counter() - self._start_time
            stats = self._stats
            return RunStatistics(
                segments_total=stats.segments_total,
                segments_retried=stats.segments_retried,
                segments_failed=stats.segments_failed,
                total_duration=stats.total_duration,
                per_segment_durations=list(stats.per_segment_durations),
                retry_attempts=stats.retry_attempts,
                degraded_segments=sorted(stats.degraded_segments),
                audio_duration=stats.audio_duration,
            )


class PerformanceProfiler:
    """Profiles enhancement performance.

    Tracks wall-clock timing for enhancement tasks.
    """

    @staticmethod
    @contextmanager
    def timed():
        """Context manager yielding a dict whose "elapsed" key is set on exit.

        Example:
            >>> with PerformanceProfiler.timed() as timing:
            ...     enhanced = engine.enhance(samples)
            >>> print(timing["elapsed"])
        """
        timing = {"elapsed": 0.0}
        start_time = time.perf_counter()
        try:
            yield timing
        finally:
            timing["elapsed"] = time.perf_counter() - start_time


@contextmanager
def cuda_memory_manager():
    """Context manager for CUDA memory management.

    Ensures GPU memory is cleared after operations complete.

    Example:
        >>> with cuda_memory_manager():
        ...     enhanced, stats = enhancer.enhance(audio)
    """
    try:
        yield
    finally:
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
