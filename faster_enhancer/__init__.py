"""faster-enhancer: Streaming speech enhancement for audio of any length.

This module splits long audio into overlapping fixed-size segments, runs
each through a black-box enhancement model on a pool of worker threads and
stitches the enhanced segments back together with overlap-add.

Example:
    >>> from faster_enhancer import FastEnhancer, OnnxEngine
    >>> enhancer = FastEnhancer(OnnxEngine("enhancer.onnx"), inference_threads=4)
    >>> enhanced, stats = enhancer.enhance("noisy.wav")
    >>> print(stats)
"""

from .config import (
    EnhancerConfig,
    FailurePolicy,
    recommended_overlap_ratio,
    recommended_segment_size,
)
from .coordinator import CoordinatorState, ProcessingCoordinator
from .data_models import FadeEnvelope, RawSegment, RunStatistics, SegmentSpec
from .engines import CallableEngine, EnhancementEngine, OnnxEngine, TorchModuleEngine
from .exceptions import (
    EnhancerError,
    InferenceError,
    InferenceExhausted,
    InferenceFatal,
    InvalidConfiguration,
    ReconstructionGap,
    RunCancelled,
    TransientEngineError,
)
from .fast_enhancer import FastEnhancer
from .frame_buffer import FrameBuffer
from .gain import GainNormalizer
from .gateway import InferenceGateway
from .profiler import PerformanceProfiler, RunProfiler, cuda_memory_manager
from .reconstructor import OverlapAddAccumulator
from .windowing import WindowingPolicy, build_fade_envelope

__version__ = "0.1.0"

__all__ = [
    "CallableEngine",
    "CoordinatorState",
    "EnhancementEngine",
    "EnhancerConfig",
    "EnhancerError",
    "FadeEnvelope",
    "FailurePolicy",
    "FastEnhancer",
    "FrameBuffer",
    "GainNormalizer",
    "InferenceError",
    "InferenceExhausted",
    "InferenceFatal",
    "InferenceGateway",
    "InvalidConfiguration",
    "OnnxEngine",
    "OverlapAddAccumulator",
    "PerformanceProfiler",
    "ProcessingCoordinator",
    "RawSegment",
    "ReconstructionGap",
    "RunCancelled",
    "RunProfiler",
    "RunStatistics",
    "SegmentSpec",
    "TorchModuleEngine",
    "TransientEngineError",
    "WindowingPolicy",
    "build_fade_envelope",
    "cuda_memory_manager",
    "recommended_overlap_ratio",
    "recommended_segment_size",
]
