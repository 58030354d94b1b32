"""Basic usage example for faster-enhancer.

This example demonstrates:
1. Enhancing an audio file with a PyTorch model
2. Enhancing a numpy array
3. Handling flaky engines with retries and the degrade policy
4. Reading the run statistics
"""

import numpy as np
import torch

from faster_enhancer import (
    CallableEngine,
    FastEnhancer,
    InferenceExhausted,
    TorchModuleEngine,
    TransientEngineError,
)


class SpectralGate(torch.nn.Module):
    """Tiny stand-in for a real enhancement model.

    Zeroes STFT bins below a fixed magnitude threshold. Replace with your
    own model mapping [1, 1, N] waveforms to [1, 1, N].
    """

    def __init__(self, threshold=0.02, n_fft=512):
        super().__init__()
        self.threshold = threshold
        self.n_fft = n_fft

    def forward(self, x):
        n = x.shape[-1]
        window = torch.hann_window(self.n_fft, device=x.device)
        spec = torch.stft(x.reshape(1, -1), self.n_fft, window=window, return_complex=True)
        spec = spec * (spec.abs() > self.threshold)
        out = torch.istft(spec, self.n_fft, window=window, length=n)
        return out.reshape(1, 1, n)


# =============================================================================
# Example 1: Enhance a file
# =============================================================================
print("=" * 70)
print("Example 1: Enhance a file")
print("=" * 70)

device = "cuda" if torch.cuda.is_available() else "cpu"
enhancer = FastEnhancer(
    TorchModuleEngine(SpectralGate(), device=device),
    segment_size=16000,     # 1 second at 16kHz
    overlap_ratio=0.1,      # 1600 samples cross-faded between segments
    inference_threads=4,
    warm_up=True,
)

audio_path = "noisy.wav"  # Your 16kHz audio file here

try:
    stats = enhancer.enhance_file(audio_path, "enhanced.wav")
    print(f"\n{stats}")
except FileNotFoundError:
    print(f"Audio file '{audio_path}' not found. Please provide a valid audio file.")
except ValueError as e:
    print(f"Could not read '{audio_path}': {e}")

# =============================================================================
# Example 2: Numpy arrays
# =============================================================================
print("\n" + "=" * 70)
print("Example 2: Numpy arrays")
print("=" * 70)

sample_rate = 16000
t = np.arange(sample_rate * 10) / sample_rate
clean = 0.3 * np.sin(2 * np.pi * 220 * t)
noisy = (clean + 0.01 * np.random.randn(len(t))).astype(np.float32)

enhanced, stats = enhancer.enhance(noisy)

print(f"Input:  {len(noisy)} samples, peak {np.max(np.abs(noisy)):.3f}")
print(f"Output: {len(enhanced)} samples, peak {np.max(np.abs(enhanced)):.3f}")
print(f"Segments: {stats.segments_total}, RTF: {stats.rtf:.3f}")

# =============================================================================
# Example 3: Retries and failure policy
# =============================================================================
print("\n" + "=" * 70)
print("Example 3: Retries and failure policy")
print("=" * 70)

rng = np.random.default_rng(0)


def flaky_model(samples):
    # Fails about a third of the time, like a remote model under load
    if rng.random() < 0.35:
        raise TransientEngineError("model server busy")
    return samples * 0.8


for policy in ("abort", "degrade"):
    flaky = FastEnhancer(
        CallableEngine(flaky_model),
        inference_threads=1,
        max_retries=1,
        failure_policy=policy,
        enable_agc=False,
    )
    try:
        _, stats = flaky.enhance(noisy)
        print(
            f"{policy:>8}: retried {stats.segments_retried} segment(s), "
            f"degraded {stats.degraded_segments}"
        )
    except InferenceExhausted as e:
        print(f"{policy:>8}: stopped at segment {e.segment_index} ({e.statistics})")

# =============================================================================
# Summary
# =============================================================================
print("\n" + "=" * 70)
print("Summary")
print("=" * 70)
print("""
1. Wrap your model in an engine:
   TorchModuleEngine(module), OnnxEngine(path) or CallableEngine(fn)

2. Create the enhancer:
   enhancer = FastEnhancer(engine, segment_size, overlap_ratio, inference_threads)

3. Enhance:
   enhanced, stats = enhancer.enhance(audio_or_path)
   stats = enhancer.enhance_file(input_path, output_path)
""")
