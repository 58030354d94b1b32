"""Pipeline configuration values.

Only the values the pipeline depends on live here; how they are obtained
(command line, files, environment) is left to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exceptions import InvalidConfiguration


class FailurePolicy(str, Enum):
    """What the coordinator does when a segment exhausts its retries.

    ABORT stops the whole run with ``InferenceExhausted``. DEGRADE merges the
    segment's raw (unenhanced) samples in its place and records the segment
    index in ``RunStatistics.degraded_segments``.
    """
    ABORT = "abort"
    DEGRADE = "degrade"


AGC_MODES = ("peak", "rms")


@dataclass
class EnhancerConfig:
    """Values controlling segmentation, inference and gain normalization.

    Attributes:
        segment_size: Samples per segment fed to the engine
        overlap_ratio: Fraction of a segment shared with its neighbour, in [0, 1)
        inference_threads: Number of concurrent inference workers
        max_retries: Retries per segment after the first failed attempt
        enable_agc: Whether to run gain normalization after reconstruction
        agc_target_level: Target level for gain normalization, in (0, 1]
        agc_mode: Level measure used by gain normalization ("peak" or "rms")
        inference_timeout: Optional per-call timeout in seconds passed to the
            engine; only engines with ``supports_timeout`` enforce it
        failure_policy: Behaviour when a segment exhausts its retries
    """
    segment_size: int = 16000
    overlap_ratio: float = 0.1
    inference_threads: int = 4
    max_retries: int = 3
    enable_agc: bool = True
    agc_target_level: float = 0.5
    agc_mode: str = "peak"
    inference_timeout: Optional[float] = None
    failure_policy: FailurePolicy = FailurePolicy.ABORT

    def validate(self) -> None:
        """Check all values.

        Raises:
            InvalidConfiguration: If any value is out of range
        """
        if isinstance(self.segment_size, bool) or not isinstance(self.segment_size, int):
            raise InvalidConfiguration(
                f"segment_size must be int, got {type(self.segment_size).__name__}"
            )
        if self.segment_size <= 0:
            raise InvalidConfiguration(
                f"segment_size must be positive, got {self.segment_size}"
            )
        if not 0.0 <= self.overlap_ratio < 1.0:
            raise InvalidConfiguration(
                f"overlap_ratio must be in [0.0, 1.0), got {self.overlap_ratio}"
            )
        if isinstance(self.inference_threads, bool) or not isinstance(self.inference_threads, int):
            raise InvalidConfiguration(
                f"inference_threads must be int, got {type(self.inference_threads).__name__}"
            )
        if self.inference_threads < 1:
            raise InvalidConfiguration(
                f"inference_threads must be positive, got {self.inference_threads}"
            )
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise InvalidConfiguration(
                f"max_retries must be int, got {type(self.max_retries).__name__}"
            )
        if self.max_retries < 0:
            raise InvalidConfiguration(
                f"max_retries must be non-negative, got {self.max_retries}"
            )
        if not 0.0 < self.agc_target_level <= 1.0:
            raise InvalidConfiguration(
                f"agc_target_level must be in (0.0, 1.0], got {self.agc_target_level}"
            )
        if self.agc_mode not in AGC_MODES:
            raise InvalidConfiguration(
                f"agc_mode must be 'peak' or 'rms', got '{self.agc_mode}'"
            )
        if self.inference_timeout is not None and self.inference_timeout <= 0:
            raise InvalidConfiguration(
                f"inference_timeout must be positive, got {self.inference_timeout}"
            )
        try:
            self.failure_policy = FailurePolicy(self.failure_policy)
        except ValueError as e:
            raise InvalidConfiguration(
                f"failure_policy must be 'abort' or 'degrade', got '{self.failure_policy}'"
            ) from e

    @property
    def overlap_samples(self) -> int:
        """Number of samples shared by two neighbouring segments."""
        return int(self.segment_size * self.overlap_ratio)

    @property
    def hop_size(self) -> int:
        """Distance in samples between consecutive segment starts."""
        return self.segment_size - self.overlap_samples


def recommended_segment_size(sample_rate: int) -> int:
    """One second of audio, never less than 16000 samples."""
    return max(int(sample_rate), 16000)


def recommended_overlap_ratio(segment_size: int) -> float:
    """Longer segments need proportionally less overlap."""
    if segment_size >= 32000:
        return 0.05
    if segment_size >= 16000:
        return 0.1
    return 0.2
