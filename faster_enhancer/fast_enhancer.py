"""Main API class for faster-enhancer.

This module provides the FastEnhancer class, which is the primary interface
for using faster-enhancer. It validates parameters, loads and saves audio,
and runs one ProcessingCoordinator per input.
"""

import logging
import os
from typing import Optional, Tuple, Union

import numpy as np
import soundfile as sf

from .config import EnhancerConfig, FailurePolicy
from .coordinator import ProcessingCoordinator
from .data_models import RunStatistics
from .engines import EnhancementEngine
from .profiler import cuda_memory_manager

logger = logging.getLogger(__name__)


class FastEnhancer:
    """Main interface for faster-enhancer functionality.

    FastEnhancer runs a speech enhancement engine over audio of any length
    by splitting it into overlapping fixed-size segments, enhancing them in
    parallel and stitching the results back together.

    Example:
        >>> engine = OnnxEngine("model/enhancer.onnx")
        >>> enhancer = FastEnhancer(engine, inference_threads=4)
        >>> enhanced, stats = enhancer.enhance("noisy.wav")
        >>> print(f"RTF: {stats.rtf:.3f}")

    Attributes:
        engine: Enhancement engine used for every segment
        config: Pipeline configuration
        sample_rate: Expected input sample rate in Hz
    """

    def __init__(
        self,
        engine: EnhancementEngine,
        segment_size: int = 16000,
        overlap_ratio: float = 0.1,
        inference_threads: int = 4,
        max_retries: int = 3,
        enable_agc: bool = True,
        agc_target_level: float = 0.5,
        agc_mode: str = "peak",
        inference_timeout: Optional[float] = None,
        failure_policy: Union[str, FailurePolicy] = FailurePolicy.ABORT,
        sample_rate: int = 16000,
        warm_up: bool = False,
    ):
        """Initialize faster-enhancer.

        Args:
            engine: Enhancement engine
            segment_size: Segment length in samples
            overlap_ratio: Overlap fraction between segments in [0.0, 1.0)
            inference_threads: Number of concurrent inference workers
            max_retries: Retries per segment on transient engine errors
            enable_agc: Whether to normalize output gain
            agc_target_level: Target level for gain normalization in (0.0, 1.0]
            agc_mode: "peak" or "rms"
            inference_timeout: Optional per-call engine timeout in seconds;
                TorchModuleEngine and OnnxEngine ignore it
            failure_policy: "abort" or "degrade" when a segment exhausts retries
            sample_rate: Expected input sample rate in Hz
            warm_up: Run one silent segment through the engine before returning

        Raises:
            TypeError: If engine or sample_rate has the wrong type
            ValueError: If parameters are invalid
        """
        if not isinstance(engine, EnhancementEngine):
            raise TypeError(
                f"engine must be EnhancementEngine, got {type(engine).__name__}"
            )

        if not isinstance(sample_rate, int):
            raise TypeError(
                f"sample_rate must be int, got {type(sample_rate).__name__}"
            )
        if sample_rate <= 0:
            raise ValueError(
                f"sample_rate must be positive, got {sample_rate}"
            )

        self.config = EnhancerConfig(
            segment_size=segment_size,
            overlap_ratio=overlap_ratio,
            inference_threads=inference_threads,
            max_retries=max_retries,
            enable_agc=enable_agc,
            agc_target_level=agc_target_level,
            agc_mode=agc_mode,
            inference_timeout=inference_timeout,
            failure_policy=failure_policy,
        )
        self.config.validate()

        self.engine = engine
        self.sample_rate = sample_rate

        if warm_up:
            self.engine.warm_up(segment_size)

        logger.info(
            f"FastEnhancer initialized: segment_size={segment_size}, "
            f"overlap_ratio={overlap_ratio}, threads={inference_threads}, "
            f"agc={enable_agc}, failure_policy={self.config.failure_policy.value}"
        )

    def enhance(
        self,
        audio: Union[str, np.ndarray],
    ) -> Tuple[np.ndarray, RunStatistics]:
        """Enhance an audio file or array.

        Args:
            audio: Audio file path or 1D numpy array at sample_rate

        Returns:
            enhanced: float32 samples, same length as the input
            statistics: Run statistics

        Raises:
            FileNotFoundError: If audio file is not found
            ValueError: If audio is invalid
            TypeError: If audio has an invalid type
            InferenceExhausted: If a segment fails under the abort policy
            InferenceFatal: On a non-retryable engine error
        """
        if isinstance(audio, str):
            audio_array = self.load_audio(audio)

        elif isinstance(audio, np.ndarray):
            if audio.ndim != 1:
                raise ValueError(
                    f"audio array must be 1-dimensional, got shape {audio.shape}"
                )
            if len(audio) == 0:
                raise ValueError("audio array cannot be empty")

            audio_array = audio.astype(np.float32, copy=False)

        else:
            raise TypeError(
                f"audio must be str (file path) or np.ndarray, "
                f"got {type(audio).__name__}"
            )

        coordinator = ProcessingCoordinator(
            audio_array,
            self.engine,
            config=self.config,
            sample_rate=self.sample_rate,
        )
        with cuda_memory_manager():
            return coordinator.run()

    def enhance_file(
        self,
        input_path: str,
        output_path: str,
        subtype: str = "PCM_16",
    ) -> RunStatistics:
        """Enhance an audio file and write the result.

        Args:
            input_path: Input audio file path
            output_path: Output audio file path
            subtype: soundfile subtype for the output (default: "PCM_16")

        Returns:
            Run statistics
        """
        enhanced, statistics = self.enhance(input_path)
        self.save_audio(output_path, enhanced, subtype=subtype)
        logger.info(f"Wrote {len(enhanced)} samples to '{output_path}'")
        return statistics

    def load_audio(self, path: str) -> np.ndarray:
        """Read an audio file as mono float32.

        Multi-channel files are averaged to mono. Resampling is not
        performed; the file must already be at sample_rate.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file cannot be decoded, is empty, or has the
                wrong sample rate
        """
        if not os.path.exists(path):
            raise FileNotFoundError(
                f"Audio file '{path}' not found. Check file path and permissions"
            )

        try:
            data, file_sample_rate = sf.read(path, dtype="float32", always_2d=True)
        except RuntimeError as e:
            raise ValueError(
                f"Failed to load audio file '{path}'. "
                f"Check that the file is a valid audio format. Error: {str(e)}"
            ) from e

        if file_sample_rate != self.sample_rate:
            raise ValueError(
                f"Audio file '{path}' has sample rate {file_sample_rate}Hz, "
                f"expected {self.sample_rate}Hz. Resample it first"
            )

        audio = data.mean(axis=1) if data.shape[1] > 1 else data[:, 0]
        if len(audio) == 0:
            raise ValueError(f"Audio file '{path}' is empty")

        logger.debug(
            f"Loaded '{path}': {len(audio) / self.sample_rate:.2f}s, "
            f"{data.shape[1]} channel(s)"
        )
        return np.ascontiguousarray(audio, dtype=np.float32)

    def save_audio(self, path: str, audio: np.ndarray, subtype: str = "PCM_16"):
        """Write mono samples to an audio file at sample_rate."""
        sf.write(path, np.clip(audio, -1.0, 1.0), self.sample_rate, subtype=subtype)
