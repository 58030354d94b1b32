"""Inference gateway with bounded retries.

This module adapts segment buffers to the engine boundary, calls the engine
and retries transient failures, translating the engine's error vocabulary
into ``InferenceExhausted`` and ``InferenceFatal``.
"""

import logging
import time
from typing import Optional, Union

import numpy as np

from .data_models import RawSegment
from .engines import EnhancementEngine
from .exceptions import InferenceExhausted, InferenceFatal, TransientEngineError
from .profiler import RunProfiler

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (TransientEngineError, TimeoutError, MemoryError)


def is_retryable(error: BaseException) -> bool:
    """Whether an engine error may go away on a second attempt."""
    if isinstance(error, RETRYABLE_ERRORS):
        return True
    return isinstance(error, RuntimeError) and "out of memory" in str(error).lower()


class InferenceGateway:
    """Runs one segment through the engine, retrying transient failures.

    The gateway is safe to share between worker threads as long as the
    engine is; all statistics go through the lock-protected RunProfiler.

    Attributes:
        engine: Enhancement engine
        segment_size: Expected segment length in samples
        max_retries: Retries allowed after the first failed attempt
        timeout: Per-call timeout passed to the engine
    """

    def __init__(
        self,
        engine: EnhancementEngine,
        segment_size: int,
        max_retries: int = 3,
        timeout: Optional[float] = None,
        profiler: Optional[RunProfiler] = None,
    ):
        """Initialize inference gateway.

        Args:
            engine: Enhancement engine to call
            segment_size: Segment length in samples
            max_retries: Retry budget per segment (default: 3)
            timeout: Optional per-call timeout in seconds
            profiler: Statistics recorder (default: a private one)

        Raises:
            ValueError: If segment_size or max_retries is out of range
            TypeError: If max_retries is not an integer
        """
        if not isinstance(max_retries, int):
            raise TypeError(
                f"max_retries must be int, got {type(max_retries).__name__}"
            )
        if max_retries < 0:
            raise ValueError(
                f"max_retries must be non-negative, got {max_retries}"
            )
        if segment_size <= 0:
            raise ValueError(
                f"segment_size must be positive, got {segment_size}"
            )

        self.engine = engine
        self.segment_size = segment_size
        self.max_retries = max_retries
        self.timeout = timeout
        self.profiler = profiler if profiler is not None else RunProfiler()

        if timeout is not None and not engine.supports_timeout:
            logger.debug(
                f"{type(engine).__name__} does not enforce timeouts; "
                f"inference_timeout={timeout} is ignored"
            )

    def infer(self, segment: Union[RawSegment, np.ndarray]) -> np.ndarray:
        """Enhance one segment.

        Args:
            segment: RawSegment (or bare float array) of segment_size samples;
                statistics are only recorded for RawSegment input

        Returns:
            Newly allocated float32 array of segment_size samples

        Raises:
            InferenceExhausted: If every attempt failed with a retryable error
            InferenceFatal: On a non-retryable error or a malformed output
        """
        if isinstance(segment, RawSegment):
            index = segment.index
            samples = segment.samples
        else:
            index = None
            samples = np.asarray(segment, dtype=np.float32)

        if samples.ndim != 1 or len(samples) != self.segment_size:
            raise InferenceFatal(
                f"segment {index} has shape {samples.shape}, "
                f"expected ({self.segment_size},)",
                segment_index=index,
            )

        start_time = time.perf_counter()
        last_error = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                if index is not None:
                    self.profiler.record_retry(index)
                logger.warning(
                    f"Retrying segment {index} ({attempt}/{self.max_retries}) "
                    f"after: {last_error}"
                )

            try:
                # The engine gets its own copy so retries resend identical input
                output = self.engine.enhance(samples.copy(), timeout=self.timeout)
            except Exception as e:
                if not is_retryable(e):
                    logger.error(f"Inference failed for segment {index}: {e}")
                    raise InferenceFatal(
                        f"Non-retryable inference error on segment {index}: {e}",
                        segment_index=index,
                    ) from e
                last_error = e
                continue

            enhanced = self._check_output(output, index)
            if index is not None:
                self.profiler.record_duration(index, time.perf_counter() - start_time)
            return enhanced

        if index is not None:
            self.profiler.record_failure(index)
        logger.error(
            f"Inference for segment {index} exhausted {self.max_retries} "
            f"retries: {last_error}"
        )
        raise InferenceExhausted(index, last_error, attempts=self.max_retries + 1) from last_error

    def _check_output(self, output, index: Optional[int]) -> np.ndarray:
        """Validate engine output and return it as a fresh float32 buffer."""
        try:
            enhanced = np.array(output, dtype=np.float32, copy=True)
        except (TypeError, ValueError) as e:
            raise InferenceFatal(
                f"Engine returned non-numeric output for segment {index}: {e}",
                segment_index=index,
            ) from e

        if enhanced.shape != (self.segment_size,):
            raise InferenceFatal(
                f"Engine returned shape {enhanced.shape} for segment {index}, "
                f"expected ({self.segment_size},)",
                segment_index=index,
            )

        finite = np.isfinite(enhanced)
        if not finite.all():
            logger.warning(
                f"Segment {index}: replacing {int((~finite).sum())} non-finite "
                f"samples with 0.0"
            )
            enhanced[~finite] = 0.0

        return enhanced
