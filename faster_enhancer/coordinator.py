"""Per-stream orchestration of windowing, inference and reconstruction.

Inference calls for different segments are independent and run on a bounded
thread pool. Merging is not: the calling thread consumes results strictly in
segment order, waiting on the next future in sequence while later segments
keep running, and is the only writer of the output accumulator.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Deque, Iterator, Optional, Tuple

import numpy as np

from .config import EnhancerConfig, FailurePolicy
from .data_models import RawSegment, RunStatistics, SegmentSpec
from .engines import EnhancementEngine
from .exceptions import EnhancerError, InferenceExhausted, RunCancelled
from .frame_buffer import FrameBuffer
from .gain import GainNormalizer
from .gateway import InferenceGateway
from .profiler import RunProfiler
from .reconstructor import OverlapAddAccumulator
from .windowing import WindowingPolicy

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    IDLE = "idle"
    WINDOWING = "windowing"
    FETCH = "fetch"
    INFER = "infer"
    MERGE = "merge"
    FINALIZING = "finalizing"
    NORMALIZING = "normalizing"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProcessingCoordinator:
    """Enhances exactly one stream end to end.

    A coordinator moves through IDLE -> WINDOWING -> (FETCH, INFER, MERGE)
    per segment -> FINALIZING -> NORMALIZING -> DONE. Errors end in FAILED
    and cancellation in CANCELLED; neither the run nor windowing can be
    restarted. Create a new coordinator for every stream.

    Example:
        >>> coordinator = ProcessingCoordinator(audio, engine, EnhancerConfig())
        >>> enhanced, stats = coordinator.run()
        >>> print(stats)

    Attributes:
        config: Validated pipeline configuration
        sample_rate: Stream sample rate in Hz (used for durations only)
        state: Current CoordinatorState
    """

    def __init__(
        self,
        stream: np.ndarray,
        engine: EnhancementEngine,
        config: Optional[EnhancerConfig] = None,
        sample_rate: int = 16000,
    ):
        """Initialize coordinator.

        Args:
            stream: Mono float audio samples (1D, non-empty)
            engine: Enhancement engine shared by all inference workers
            config: Pipeline configuration (default: EnhancerConfig())
            sample_rate: Stream sample rate in Hz (default: 16000)

        Raises:
            InvalidConfiguration: If the configuration is invalid
            ValueError: If the stream is empty or not 1-dimensional
        """
        self.config = config if config is not None else EnhancerConfig()
        self.config.validate()

        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        self.frame_buffer = FrameBuffer(stream)
        if len(self.frame_buffer) == 0:
            raise ValueError("stream cannot be empty")

        self.engine = engine
        self.sample_rate = sample_rate
        self.state = CoordinatorState.IDLE
        self._cancel_event = threading.Event()

    def cancel(self):
        """Request cancellation; takes effect before the next segment merges."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def run(self) -> Tuple[np.ndarray, RunStatistics]:
        """Enhance the stream.

        Returns:
            enhanced: float32 samples, same length as the input stream
            statistics: RunStatistics for this run

        Raises:
            InferenceExhausted: If a segment exhausts its retries under ABORT
            InferenceFatal: On a non-retryable engine error
            RunCancelled: If cancel() was called during the run
            ReconstructionGap: If some output sample received no weight
            RuntimeError: If the coordinator has already run
        """
        if self.state != CoordinatorState.IDLE:
            raise RuntimeError(
                f"coordinator already ran (state: {self.state.value}); "
                f"create a new ProcessingCoordinator for each stream"
            )

        self.state = CoordinatorState.WINDOWING
        stream_length = len(self.frame_buffer)
        policy = WindowingPolicy(
            stream_length,
            segment_size=self.config.segment_size,
            overlap_ratio=self.config.overlap_ratio,
        )

        profiler = RunProfiler(
            segments_total=len(policy),
            audio_duration=stream_length / self.sample_rate,
        )
        profiler.start()

        gateway = InferenceGateway(
            self.engine,
            segment_size=self.config.segment_size,
            max_retries=self.config.max_retries,
            timeout=self.config.inference_timeout,
            profiler=profiler,
        )
        accumulator = OverlapAddAccumulator(stream_length, policy)

        logger.info(
            f"Enhancing {stream_length / self.sample_rate:.2f}s of audio in "
            f"{len(policy)} segment(s) (segment_size={policy.segment_size}, "
            f"overlap={policy.overlap_width}, threads={self.config.inference_threads})"
        )

        try:
            self._process_segments(policy, gateway, accumulator, profiler)

            self.state = CoordinatorState.FINALIZING
            output = accumulator.finalize()

            if self.config.enable_agc:
                self.state = CoordinatorState.NORMALIZING
                normalizer = GainNormalizer(
                    target_level=self.config.agc_target_level,
                    mode=self.config.agc_mode,
                )
                output, gain = normalizer.apply(output)
                logger.debug(f"Applied output gain {gain:.3f}")
        except RunCancelled as e:
            self.state = CoordinatorState.CANCELLED
            accumulator.discard()
            e.statistics = profiler.finalize()
            logger.warning(f"Run cancelled after {accumulator.merged_count} segment(s)")
            raise
        except EnhancerError as e:
            self.state = CoordinatorState.FAILED
            accumulator.discard()
            e.statistics = profiler.finalize()
            logger.error(f"Run failed: {e}")
            raise
        except BaseException:
            self.state = CoordinatorState.FAILED
            accumulator.discard()
            raise

        statistics = profiler.finalize()
        self.state = CoordinatorState.DONE

        if statistics.degraded_segments:
            logger.warning(
                f"Segments merged without enhancement: {statistics.degraded_segments}"
            )
        logger.info(str(statistics))

        return output, statistics

    def _process_segments(
        self,
        policy: WindowingPolicy,
        gateway: InferenceGateway,
        accumulator: OverlapAddAccumulator,
        profiler: RunProfiler,
    ):
        """Dispatch inference to workers and merge results in segment order."""
        threads = self.config.inference_threads
        max_in_flight = 2 * threads
        specs = iter(policy)
        pending: Deque[Tuple[RawSegment, Future]] = deque()
        total = len(policy)
        report_every = max(1, total // 10)

        with ThreadPoolExecutor(
            max_workers=threads, thread_name_prefix="enhancer-infer"
        ) as executor:
            try:
                self._submit(specs, pending, executor, gateway, max_in_flight)

                while pending:
                    if self._cancel_event.is_set():
                        raise RunCancelled(
                            f"Run cancelled before segment {pending[0][0].index}"
                        )

                    raw, future = pending.popleft()

                    self.state = CoordinatorState.INFER
                    try:
                        enhanced = future.result()
                    except InferenceExhausted:
                        if self.config.failure_policy != FailurePolicy.DEGRADE:
                            raise
                        logger.warning(
                            f"Segment {raw.index} exhausted retries; "
                            f"merging unenhanced samples"
                        )
                        profiler.record_degraded(raw.index)
                        enhanced = raw.samples

                    self.state = CoordinatorState.MERGE
                    accumulator.merge(raw.spec, enhanced)

                    merged = accumulator.merged_count
                    logger.debug(f"Merged segment {raw.index} ({merged}/{total})")
                    if merged % report_every == 0 and total > 10:
                        logger.info(f"Progress: {merged}/{total}")

                    self._submit(specs, pending, executor, gateway, max_in_flight)

                # Submission stops early only when cancelled
                if not accumulator.is_complete:
                    raise RunCancelled(
                        f"Run cancelled after {accumulator.merged_count} of {total} segment(s)"
                    )
            except BaseException:
                for _, future in pending:
                    future.cancel()
                raise

    def _submit(
        self,
        specs: Iterator[SegmentSpec],
        pending: Deque[Tuple[RawSegment, Future]],
        executor: ThreadPoolExecutor,
        gateway: InferenceGateway,
        max_in_flight: int,
    ):
        """Top up the in-flight queue with the next segments in order."""
        while len(pending) < max_in_flight and not self._cancel_event.is_set():
            spec = next(specs, None)
            if spec is None:
                return
            self.state = CoordinatorState.FETCH
            raw = self.frame_buffer.fetch(spec)
            pending.append((raw, executor.submit(gateway.infer, raw)))
