"""Enhancement engine backends.

An engine consumes one fixed-length float32 segment and returns an enhanced
segment of the same length. Engines signal recoverable failures by raising
``TransientEngineError``, ``TimeoutError`` or ``MemoryError``; anything else
is treated as fatal by the inference gateway.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
import torch

from .exceptions import TransientEngineError
from .profiler import PerformanceProfiler

logger = logging.getLogger(__name__)

# onnxruntime raises plain Exception subclasses; resource failures are
# recognised by message
ORT_RESOURCE_MARKERS = ("failed to allocate", "out of memory", "bad_alloc")


class EnhancementEngine(ABC):
    """Interface for a black-box speech enhancement model.

    Engines that can enforce the ``timeout`` passed to ``enhance`` set
    ``supports_timeout`` to True; the others ignore it.
    """

    supports_timeout = False

    @abstractmethod
    def enhance(self, samples: np.ndarray, timeout: Optional[float] = None) -> np.ndarray:
        """Enhance one segment.

        Args:
            samples: float32 segment of the configured segment size
            timeout: Optional time budget in seconds for this call

        Returns:
            Enhanced samples with the same shape as the input
        """

    def warm_up(self, segment_size: int):
        """Run one silent segment through the model to trigger lazy setup."""
        logger.info(f"Warming up {type(self).__name__} with {segment_size} samples")
        with PerformanceProfiler.timed() as timing:
            self.enhance(np.zeros(segment_size, dtype=np.float32))
        logger.info(f"Warm-up complete in {timing['elapsed'] * 1000:.1f}ms")


class CallableEngine(EnhancementEngine):
    """Adapts a plain ``fn(samples) -> samples`` callable to the engine interface.

    If ``pass_timeout`` is set, the callable is invoked as ``fn(samples, timeout)``.
    """

    def __init__(
        self,
        fn: Callable[..., np.ndarray],
        pass_timeout: bool = False,
    ):
        if not callable(fn):
            raise TypeError(f"fn must be callable, got {type(fn).__name__}")
        self.fn = fn
        self.pass_timeout = pass_timeout
        self.supports_timeout = pass_timeout

    def enhance(self, samples: np.ndarray, timeout: Optional[float] = None) -> np.ndarray:
        if self.pass_timeout:
            return self.fn(samples, timeout)
        return self.fn(samples)


class TorchModuleEngine(EnhancementEngine):
    """Runs a PyTorch module that maps ``[1, 1, N]`` waveforms to ``[1, 1, N]``.

    The per-call timeout is not enforced.

    Attributes:
        module: Model in eval mode on ``device``
        device: Device the model runs on
    """

    def __init__(
        self,
        module: torch.nn.Module,
        device: Union[str, torch.device] = "cpu",
    ):
        """Initialize the engine.

        Args:
            module: Enhancement model
            device: Device to run on ("cuda" or "cpu")

        Raises:
            RuntimeError: If CUDA is requested but not available
        """
        if not isinstance(module, torch.nn.Module):
            raise TypeError(
                f"module must be torch.nn.Module, got {type(module).__name__}"
            )
        self.device = torch.device(device)
        if self.device.type == "cuda" and not torch.cuda.is_available():
            raise RuntimeError(
                "CUDA device requested but not available. "
                "Install CUDA toolkit or use device='cpu'"
            )

        self.module = module.to(self.device).eval()

    @torch.inference_mode()
    def enhance(self, samples: np.ndarray, timeout: Optional[float] = None) -> np.ndarray:
        tensor = torch.from_numpy(np.ascontiguousarray(samples, dtype=np.float32))
        tensor = tensor.view(1, 1, -1).to(self.device)

        try:
            output = self.module(tensor)
        except RuntimeError as e:
            if "out of memory" in str(e).lower():
                if self.device.type == "cuda":
                    torch.cuda.empty_cache()
                raise TransientEngineError(f"Out of memory during inference: {e}") from e
            raise

        return output.detach().to("cpu", torch.float32).reshape(-1).numpy()


class OnnxEngine(EnhancementEngine):
    """Runs an ONNX enhancement model through onnxruntime.

    The default ``input_dtype="int16"`` quantizes the segment to 16-bit PCM
    and feeds it as ``[1, 1, N]``; integer outputs are scaled back to floats.
    Allocation failures inside onnxruntime are raised as
    ``TransientEngineError``. The per-call timeout is not enforced.
    """

    def __init__(
        self,
        model_path: Union[str, Path],
        intra_op_num_threads: int = 1,
        input_dtype: str = "int16",
    ):
        """Initialize the engine.

        Args:
            model_path: Path to .onnx file
            intra_op_num_threads: Threads onnxruntime may use inside one call
            input_dtype: "int16" or "float32"

        Raises:
            ImportError: If onnxruntime is not installed
            FileNotFoundError: If the model file does not exist
        """
        try:
            import onnxruntime as ort
        except ImportError:
            raise ImportError(
                "onnxruntime required for ONNX backend. "
                "Install with: pip install faster-enhancer[onnx]"
            )

        if input_dtype not in ("int16", "float32"):
            raise ValueError(
                f"input_dtype must be 'int16' or 'float32', got '{input_dtype}'"
            )

        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        options = ort.SessionOptions()
        options.intra_op_num_threads = intra_op_num_threads
        self.session = ort.InferenceSession(str(model_path), sess_options=options)
        self.input_name = self.session.get_inputs()[0].name
        self.input_dtype = input_dtype

        logger.info(
            f"Loaded ONNX model '{model_path}' (input={self.input_name}, "
            f"dtype={input_dtype}, threads={intra_op_num_threads})"
        )

    def enhance(self, samples: np.ndarray, timeout: Optional[float] = None) -> np.ndarray:
        if self.input_dtype == "int16":
            feed = (np.clip(samples, -1.0, 1.0) * 32767.0).astype(np.int16)
        else:
            feed = np.asarray(samples, dtype=np.float32)

        try:
            outputs = self.session.run(None, {self.input_name: feed.reshape(1, 1, -1)})
        except Exception as e:
            message = str(e).lower()
            if any(marker in message for marker in ORT_RESOURCE_MARKERS):
                raise TransientEngineError(
                    f"Resource exhaustion during ONNX inference: {e}"
                ) from e
            raise

        output = np.asarray(outputs[0])

        if np.issubdtype(output.dtype, np.integer):
            return output.reshape(-1).astype(np.float32) / 32767.0
        return output.reshape(-1).astype(np.float32)
