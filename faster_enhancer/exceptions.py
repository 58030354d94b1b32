"""Error types raised by the faster-enhancer pipeline.

Transient engine errors are retried inside the inference gateway and only
surface as ``InferenceExhausted`` once the retry budget is spent. Every other
error propagates to the coordinator, which attaches whatever run statistics
it collected before re-raising.
"""

from typing import Optional, Sequence


class EnhancerError(Exception):
    """Base class for all faster-enhancer errors."""


class InvalidConfiguration(EnhancerError, ValueError):
    """Raised when windowing or pipeline parameters are invalid."""


class TransientEngineError(EnhancerError):
    """Raised by an engine to signal that the call may succeed if retried."""


class InferenceError(EnhancerError):
    """Base class for inference failures tied to one segment.

    Attributes:
        segment_index: Index of the segment that failed (None if unknown)
        statistics: Partial RunStatistics attached by the coordinator
    """

    def __init__(self, message: str, segment_index: Optional[int] = None):
        super().__init__(message)
        self.segment_index = segment_index
        self.statistics = None


class InferenceExhausted(InferenceError):
    """Raised when a segment keeps failing after all retries."""

    def __init__(
        self,
        segment_index: Optional[int],
        last_error: BaseException,
        attempts: int,
    ):
        super().__init__(
            f"Inference for segment {segment_index} failed after {attempts} "
            f"attempt(s): {last_error}",
            segment_index=segment_index,
        )
        self.last_error = last_error
        self.attempts = attempts


class InferenceFatal(InferenceError):
    """Raised on a non-retryable engine failure or a malformed engine output."""


class ReconstructionGap(EnhancerError, AssertionError):
    """Raised when an output sample received no weight during overlap-add.

    This indicates a defect in the windowing/merge bookkeeping and is never
    expected during correct operation.
    """

    def __init__(self, indices: Sequence[int]):
        indices = list(indices)
        preview = ", ".join(str(i) for i in indices[:10])
        if len(indices) > 10:
            preview += ", ..."
        super().__init__(
            f"{len(indices)} output sample(s) have zero weight sum: [{preview}]"
        )
        self.indices = indices


class RunCancelled(EnhancerError):
    """Raised when a run is cancelled between segments."""

    def __init__(self, message: str = "Run cancelled"):
        super().__init__(message)
        self.statistics = None
