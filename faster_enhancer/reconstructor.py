"""Overlap-add reconstruction of enhanced segments.

Each merged segment adds ``samples * weights`` to an accumulation buffer and
``weights`` to a parallel weight-sum buffer. Dividing the two once every
segment has been merged yields the reconstructed stream; overlapped regions
become a weighted blend of the neighbouring segments and padding samples
past the stream end are dropped.
"""

import numpy as np

from .data_models import SegmentSpec
from .exceptions import ReconstructionGap
from .windowing import WindowingPolicy


class OverlapAddAccumulator:
    """Accumulates enhanced segments into one output stream.

    Segments must be merged in the order the windowing policy emits them.
    The accumulator is owned by a single consumer and is not thread-safe.

    Attributes:
        stream_length: Number of output samples
        policy: Windowing policy that produced the segment specs
        merged_count: Number of segments merged so far
    """

    def __init__(self, stream_length: int, policy: WindowingPolicy):
        if stream_length != policy.stream_length:
            raise ValueError(
                f"stream_length ({stream_length}) does not match windowing "
                f"policy ({policy.stream_length})"
            )

        self.stream_length = stream_length
        self.policy = policy
        self.merged_count = 0
        self._accumulated = np.zeros(stream_length, dtype=np.float64)
        self._weight_sum = np.zeros(stream_length, dtype=np.float64)
        self._discarded = False

    @property
    def is_complete(self) -> bool:
        """True once every segment of the policy has been merged."""
        return self.merged_count == len(self.policy)

    @property
    def weight_sum(self) -> np.ndarray:
        """Read-only view of the per-sample weight sums."""
        self._check_alive()
        view = self._weight_sum.view()
        view.setflags(write=False)
        return view

    def merge(self, spec: SegmentSpec, enhanced: np.ndarray):
        """Fold one enhanced segment into the output.

        Args:
            spec: Window the segment was cut from
            enhanced: Enhanced samples, spec.length long

        Raises:
            ValueError: If segments arrive out of order or have the wrong length
            RuntimeError: If the accumulator was discarded
        """
        self._check_alive()

        if spec.index != self.merged_count:
            raise ValueError(
                f"segment {spec.index} merged out of order, expected segment "
                f"{self.merged_count}"
            )
        if len(enhanced) != spec.length:
            raise ValueError(
                f"segment {spec.index} has {len(enhanced)} samples, "
                f"expected {spec.length}"
            )

        weights = self.policy.weights(spec)[:spec.valid_length]
        region = slice(spec.start_index, spec.end_index)

        self._accumulated[region] += np.asarray(enhanced[:spec.valid_length], dtype=np.float64) * weights
        self._weight_sum[region] += weights
        self.merged_count += 1

    def finalize(self) -> np.ndarray:
        """Divide out the weights and return the reconstructed stream.

        The accumulation buffers are left untouched, so calling this again
        returns the same result.

        Returns:
            float32 array of stream_length samples

        Raises:
            ReconstructionGap: If any output sample has a zero weight sum
            RuntimeError: If the accumulator was discarded
        """
        self._check_alive()

        gaps = np.flatnonzero(self._weight_sum <= 0.0)
        if len(gaps):
            raise ReconstructionGap(gaps.tolist())

        return (self._accumulated / self._weight_sum).astype(np.float32)

    def discard(self):
        """Drop the buffers of a cancelled or failed run."""
        self._accumulated = None
        self._weight_sum = None
        self._discarded = True

    def _check_alive(self):
        if self._discarded:
            raise RuntimeError("accumulator has been discarded")
