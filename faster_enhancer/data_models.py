"""Core data models for faster-enhancer.

This module defines the data structures used throughout the faster-enhancer
pipeline for describing segment windows, raw segment buffers, fade envelopes
and run statistics.
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np


@dataclass(frozen=True)
class SegmentSpec:
    """Position of one segment window in the input stream.

    Attributes:
        index: Position in the sequence of segments (0-based)
        start_index: First stream sample covered by the segment
        length: Segment length in samples (always the configured segment_size)
        overlap_front: Samples blended with the previous segment
        overlap_back: Samples blended with the next segment
        valid_length: Samples backed by real stream data; the rest is padding
    """
    index: int
    start_index: int
    length: int
    overlap_front: int
    overlap_back: int
    valid_length: int

    @property
    def end_index(self) -> int:
        """Exclusive end of the stream range this segment contributes to."""
        return self.start_index + self.valid_length

    @property
    def padding(self) -> int:
        return self.length - self.valid_length

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.overlap_back == 0


@dataclass
class RawSegment:
    """A fixed-length buffer sliced from the input stream.

    The buffer never aliases the stream, so it can be resent unchanged on
    retry or handed to another worker thread.

    Attributes:
        spec: Window this buffer was cut from
        samples: float32 samples, zero padded to spec.length
    """
    spec: SegmentSpec
    samples: np.ndarray

    @property
    def index(self) -> int:
        return self.spec.index

    @property
    def padding(self) -> int:
        return self.spec.padding


@dataclass(frozen=True)
class FadeEnvelope:
    """Complementary cross-fade curves shared by all segments of a configuration.

    ``rise`` goes from near 0 to near 1 across the overlap and ``fall`` is its
    mirror, so ``rise + fall == 1`` at every overlap offset. Both arrays are
    read-only.

    Attributes:
        rise: Weights for the front overlap of a segment
        fall: Weights for the back overlap of a segment
    """
    rise: np.ndarray
    fall: np.ndarray

    @property
    def width(self) -> int:
        return len(self.rise)


@dataclass
class RunStatistics:
    """Aggregate statistics for one enhancement run.

    Attributes:
        segments_total: Number of segments the stream was split into
        segments_retried: Segments that needed at least one retry
        segments_failed: Segments whose retries were exhausted
        total_duration: Wall-clock run time in seconds
        per_segment_durations: Inference time per segment in seconds, by index
        retry_attempts: Total number of retries across all segments
        degraded_segments: Indices of segments merged unenhanced
        audio_duration: Input audio duration in seconds
    """
    segments_total: int = 0
    segments_retried: int = 0
    segments_failed: int = 0
    total_duration: float = 0.0
    per_segment_durations: List[float] = field(default_factory=list)
    retry_attempts: int = 0
    degraded_segments: List[int] = field(default_factory=list)
    audio_duration: float = 0.0

    @property
    def rtf(self) -> float:
        """Real-time factor (processing time / audio duration)."""
        if self.audio_duration <= 0:
            return 0.0
        return self.total_duration / self.audio_duration

    @property
    def throughput(self) -> float:
        """Audio seconds processed per wall-clock second."""
        if self.total_duration <= 0:
            return 0.0
        return self.audio_duration / self.total_duration

    @property
    def average_segment_duration(self) -> float:
        if not self.per_segment_durations:
            return 0.0
        return sum(self.per_segment_durations) / len(self.per_segment_durations)

    def __str__(self) -> str:
        return (
            f"Run: {self.audio_duration:.1f}s audio in {self.total_duration:.2f}s "
            f"(RTF: {self.rtf:.3f}, segments: {self.segments_total}, "
            f"retried: {self.segments_retried}, failed: {self.segments_failed}, "
            f"degraded: {len(self.degraded_segments)}, "
            f"avg inference: {self.average_segment_duration * 1000:.1f}ms)"
        )
