"""Automatic gain control applied to the finished output."""

import logging
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

SILENCE_LEVEL = 1e-6


class GainNormalizer:
    """Scales a whole buffer by one gain toward a target level.

    The gain is capped so the loudest sample never exceeds ``clip_ceiling``;
    if the target cannot be reached without clipping the output stays
    quieter than the target.

    Attributes:
        target_level: Desired peak or RMS level
        mode: "peak" or "rms"
        clip_ceiling: Largest allowed absolute sample value
    """

    def __init__(
        self,
        target_level: float = 0.5,
        mode: str = "peak",
        clip_ceiling: float = 1.0,
    ):
        if not 0.0 < target_level <= 1.0:
            raise ValueError(
                f"target_level must be in (0.0, 1.0], got {target_level}"
            )
        if mode not in ("peak", "rms"):
            raise ValueError(f"mode must be 'peak' or 'rms', got '{mode}'")
        if clip_ceiling <= 0:
            raise ValueError(f"clip_ceiling must be positive, got {clip_ceiling}")

        self.target_level = target_level
        self.mode = mode
        self.clip_ceiling = clip_ceiling

    def measure(self, samples: np.ndarray) -> float:
        if len(samples) == 0:
            return 0.0
        if self.mode == "peak":
            return float(np.max(np.abs(samples)))
        return float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))

    def compute_gain(self, samples: np.ndarray) -> float:
        """Gain that moves the buffer toward the target without clipping."""
        level = self.measure(samples)
        if level < SILENCE_LEVEL:
            return 1.0

        peak = float(np.max(np.abs(samples)))
        gain = self.target_level / level
        clip_safe = self.clip_ceiling / peak
        if gain > clip_safe:
            logger.debug(
                f"AGC gain {gain:.3f} capped at clip-safe {clip_safe:.3f}"
            )
            gain = clip_safe
        return gain

    def apply(self, samples: np.ndarray) -> Tuple[np.ndarray, float]:
        """Return a gain-adjusted copy of the buffer and the gain used."""
        output = np.nan_to_num(
            np.asarray(samples, dtype=np.float32), nan=0.0, posinf=0.0, neginf=0.0
        )
        gain = self.compute_gain(output)

        logger.debug(
            f"AGC: {self.mode}={self.measure(output):.4f}, "
            f"target={self.target_level:.4f}, gain={gain:.3f}"
        )

        output = output * np.float32(gain)
        np.clip(output, -self.clip_ceiling, self.clip_ceiling, out=output)
        return output, gain
