"""Segment windowing for long audio support.

This module splits a stream of known length into fixed-size overlapping
segment windows and provides the cross-fade weights used to stitch the
enhanced segments back together.
"""

import math
from functools import lru_cache
from typing import Iterator

import numpy as np

from .data_models import FadeEnvelope, SegmentSpec
from .exceptions import InvalidConfiguration


@lru_cache(maxsize=16)
def build_fade_envelope(overlap_width: int) -> FadeEnvelope:
    """Build raised-cosine cross-fade curves for an overlap width.

    The curves are sampled at half-sample offsets so that no weight is exactly
    0 or 1 inside the overlap, and ``rise[k] + fall[k] == 1`` for every ``k``.
    Results are cached; the returned arrays are read-only.

    Args:
        overlap_width: Overlap length in samples (may be 0)

    Returns:
        FadeEnvelope shared by every caller asking for the same width
    """
    if overlap_width < 0:
        raise InvalidConfiguration(
            f"overlap_width must be non-negative, got {overlap_width}"
        )

    progress = (np.arange(overlap_width, dtype=np.float64) + 0.5) / max(overlap_width, 1)
    rise = 0.5 * (1.0 - np.cos(np.pi * progress))
    fall = 1.0 - rise

    rise.setflags(write=False)
    fall.setflags(write=False)
    return FadeEnvelope(rise=rise, fall=fall)


class WindowingPolicy:
    """Computes segment boundaries and fade weights for one stream.

    Segments have a fixed length and start every ``stride`` samples. The
    first segment has no front overlap and the last has no back overlap;
    every interior segment overlaps both neighbours by ``overlap_width``.
    The final segment may run past the end of the stream, in which case
    its tail is padding.

    Iterating the policy is lazy and restartable: each ``iter()`` call
    produces the full sequence again from the first segment.

    Attributes:
        stream_length: Number of samples in the stream
        segment_size: Segment length in samples
        overlap_ratio: Fraction of a segment shared with its neighbour
        overlap_width: floor(segment_size * overlap_ratio)
        stride: segment_size - overlap_width
    """

    def __init__(
        self,
        stream_length: int,
        segment_size: int = 16000,
        overlap_ratio: float = 0.1,
    ):
        """Initialize windowing policy.

        Args:
            stream_length: Number of samples in the stream
            segment_size: Segment length in samples (default: 16000)
            overlap_ratio: Overlap fraction in [0.0, 1.0) (default: 0.1)

        Raises:
            InvalidConfiguration: If any parameter is out of range
        """
        if segment_size <= 0:
            raise InvalidConfiguration(
                f"segment_size must be positive, got {segment_size}"
            )
        if not 0.0 <= overlap_ratio < 1.0:
            raise InvalidConfiguration(
                f"overlap_ratio must be in [0.0, 1.0), got {overlap_ratio}"
            )
        if stream_length < 0:
            raise InvalidConfiguration(
                f"stream_length must be non-negative, got {stream_length}"
            )

        self.stream_length = int(stream_length)
        self.segment_size = int(segment_size)
        self.overlap_ratio = overlap_ratio
        self.overlap_width = math.floor(segment_size * overlap_ratio)
        self.stride = self.segment_size - self.overlap_width
        self._num_segments = self._count_segments()

    def _count_segments(self) -> int:
        if self.stream_length == 0:
            return 0
        if self.stream_length <= self.segment_size:
            return 1
        # Smallest n with (n - 1) * stride + segment_size >= stream_length
        remaining = self.stream_length - self.segment_size
        return 1 + -(-remaining // self.stride)

    def __len__(self) -> int:
        return self._num_segments

    def __iter__(self) -> Iterator[SegmentSpec]:
        last = self._num_segments - 1
        for index in range(self._num_segments):
            yield self._spec(index, last)

    def segment(self, index: int) -> SegmentSpec:
        """Return the SegmentSpec for one segment index."""
        if not 0 <= index < self._num_segments:
            raise IndexError(
                f"segment index {index} out of range [0, {self._num_segments})"
            )
        return self._spec(index, self._num_segments - 1)

    def _spec(self, index: int, last: int) -> SegmentSpec:
        start = index * self.stride
        return SegmentSpec(
            index=index,
            start_index=start,
            length=self.segment_size,
            overlap_front=0 if index == 0 else self.overlap_width,
            overlap_back=0 if index == last else self.overlap_width,
            valid_length=min(self.segment_size, self.stream_length - start),
        )

    @property
    def envelope(self) -> FadeEnvelope:
        return build_fade_envelope(self.overlap_width)

    def weights(self, spec: SegmentSpec) -> np.ndarray:
        """Per-sample overlap-add weights for a segment.

        The curve rises across the front overlap, stays at 1.0 across the
        middle and falls across the back overlap. A segment without a front
        (or back) overlap keeps a flat 1.0 on that side.

        Args:
            spec: Segment to compute weights for

        Returns:
            float64 array of length spec.length
        """
        envelope = self.envelope
        weights = np.ones(spec.length, dtype=np.float64)
        if spec.overlap_front:
            weights[:spec.overlap_front] = envelope.rise[:spec.overlap_front]
        if spec.overlap_back:
            weights[spec.length - spec.overlap_back:] = envelope.fall[-spec.overlap_back:]
        return weights
