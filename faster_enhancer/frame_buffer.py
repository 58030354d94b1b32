"""Read-only stream storage that hands out fixed-length segment buffers."""

import numpy as np

from .data_models import RawSegment, SegmentSpec


class FrameBuffer:
    """Owns the samples of one input stream.

    The stream is copied once on construction and marked read-only. Every
    segment handed out by ``fetch`` is an independent buffer.

    Attributes:
        stream: Read-only float32 samples
    """

    def __init__(self, stream: np.ndarray):
        """Initialize frame buffer.

        Args:
            stream: Mono audio samples (1D)

        Raises:
            ValueError: If stream is not 1-dimensional
        """
        stream = np.asarray(stream)
        if stream.ndim != 1:
            raise ValueError(
                f"stream must be 1-dimensional, got shape {stream.shape}"
            )

        self.stream = np.array(stream, dtype=np.float32, copy=True)
        self.stream.setflags(write=False)

    def __len__(self) -> int:
        return len(self.stream)

    def fetch(self, spec: SegmentSpec) -> RawSegment:
        """Cut one segment out of the stream.

        Samples past the end of the stream are zero filled; ``spec.padding``
        tells how many trailing samples are padding.

        Args:
            spec: Window to cut

        Returns:
            RawSegment holding a fresh float32 buffer of length spec.length

        Raises:
            ValueError: If the window does not start inside the stream
        """
        if not 0 <= spec.start_index < len(self.stream):
            raise ValueError(
                f"segment {spec.index} starts at {spec.start_index}, outside "
                f"stream of length {len(self.stream)}"
            )

        samples = np.zeros(spec.length, dtype=np.float32)
        end = min(spec.start_index + spec.length, len(self.stream))
        samples[:end - spec.start_index] = self.stream[spec.start_index:end]

        return RawSegment(spec=spec, samples=samples)
