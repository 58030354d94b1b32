"""Benchmark different inference thread counts.

This script compares enhancement performance across different numbers of
inference worker threads to find the best setting for an engine.
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np
import torch

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from faster_enhancer import CallableEngine, FastEnhancer, TorchModuleEngine


def generate_test_audio(duration: float, sample_rate: int = 16000) -> np.ndarray:
    """Generate synthetic noisy audio for testing.

    Args:
        duration: Audio duration in seconds
        sample_rate: Sample rate in Hz

    Returns:
        Audio samples as numpy array
    """
    num_samples = int(duration * sample_rate)
    t = np.arange(num_samples) / sample_rate
    audio = 0.3 * np.sin(2 * np.pi * 220 * t) + 0.05 * np.random.randn(num_samples)
    return audio.astype(np.float32)


class ConvDenoiser(torch.nn.Module):
    """Small untrained convolutional model with a realistic compute cost."""

    def __init__(self, channels: int = 32, layers: int = 6):
        super().__init__()
        blocks = [torch.nn.Conv1d(1, channels, 9, padding=4), torch.nn.ReLU()]
        for _ in range(layers - 2):
            blocks += [torch.nn.Conv1d(channels, channels, 9, padding=4), torch.nn.ReLU()]
        blocks.append(torch.nn.Conv1d(channels, 1, 9, padding=4))
        self.net = torch.nn.Sequential(*blocks)

    def forward(self, x):
        return x + self.net(x)


def build_engine(name: str, device: str, latency: float):
    """Create the engine to benchmark.

    Args:
        name: "conv" for a PyTorch model, "sleep" for a fixed-latency stub
        device: Device for the PyTorch model
        latency: Per-call latency in seconds for the stub
    """
    if name == "sleep":
        def remote_model(samples):
            time.sleep(latency)
            return samples
        return CallableEngine(remote_model)

    return TorchModuleEngine(ConvDenoiser(), device=device)


def benchmark_threads(
    engine,
    threads: int,
    audio: np.ndarray,
    segment_size: int,
    num_runs: int = 3,
):
    """Benchmark enhancement with a specific thread count.

    Args:
        engine: Enhancement engine shared by all runs
        threads: Number of inference threads
        audio: Input audio
        segment_size: Segment size in samples
        num_runs: Number of runs for averaging

    Returns:
        Dictionary of results or None if failed
    """
    print(f"\nTesting inference_threads={threads}...")

    enhancer = FastEnhancer(
        engine,
        segment_size=segment_size,
        inference_threads=threads,
        enable_agc=False,
    )

    # Warm-up run
    try:
        enhancer.enhance(audio)
    except Exception as e:
        print(f"  Warm-up failed: {e}")
        return None

    run_times = []
    for run in range(num_runs):
        start_time = time.perf_counter()
        try:
            _, stats = enhancer.enhance(audio)
        except Exception as e:
            print(f"  Run {run+1} failed: {e}")
            return None
        run_times.append(time.perf_counter() - start_time)

    audio_duration = len(audio) / enhancer.sample_rate
    avg_time = np.mean(run_times)
    std_time = np.std(run_times)

    result = {
        "threads": threads,
        "avg_time": avg_time,
        "std_time": std_time,
        "rtf": avg_time / audio_duration,
        "throughput": audio_duration / avg_time,
        "segments": stats.segments_total,
        "avg_segment_ms": stats.average_segment_duration * 1000,
    }

    print(f"  Avg time: {avg_time:.3f}s ± {std_time:.3f}s")
    print(f"  RTF: {result['rtf']:.3f}")
    print(f"  Throughput: {result['throughput']:.1f}x realtime")
    print(f"  Avg segment inference: {result['avg_segment_ms']:.1f}ms")

    return result


def print_summary(results, audio_duration):
    """Print summary of results.

    Args:
        results: List of result dictionaries
        audio_duration: Audio duration tested
    """
    if not results:
        print("\nNo successful results to summarize")
        return

    print(f"\n{'='*70}")
    print(f"Inference Thread Comparison ({audio_duration}s audio, {results[0]['segments']} segments)")
    print(f"{'='*70}\n")

    print(f"{'Threads':<12} {'Time (s)':<12} {'RTF':<12} {'Throughput':<15} {'Segment (ms)':<15}")
    print("-" * 70)

    baseline_time = results[0]["avg_time"]

    for result in results:
        speedup = baseline_time / result["avg_time"]
        print(
            f"{result['threads']:<12} "
            f"{result['avg_time']:<12.3f} "
            f"{result['rtf']:<12.3f} "
            f"{result['throughput']:<8.1f}x ({speedup:.2f}x) "
            f"{result['avg_segment_ms']:<15.1f}"
        )

    print()

    best_result = min(results, key=lambda r: r["avg_time"])
    print(f"Optimal thread count: {best_result['threads']} "
          f"(RTF: {best_result['rtf']:.3f}, throughput: {best_result['throughput']:.1f}x)")


def main():
    parser = argparse.ArgumentParser(description="Benchmark different inference thread counts")
    parser.add_argument(
        "--engine",
        type=str,
        default="conv",
        choices=["conv", "sleep"],
        help="Engine to benchmark (default: conv)",
    )
    parser.add_argument(
        "--device",
        type=str,
        default="cuda" if torch.cuda.is_available() else "cpu",
        choices=["cpu", "cuda"],
        help="Device for the conv engine (default: cuda if available, else cpu)",
    )
    parser.add_argument(
        "--latency",
        type=float,
        default=0.05,
        help="Per-call latency of the sleep engine in seconds (default: 0.05)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        nargs="+",
        default=[1, 2, 4, 8],
        help="Thread counts to test (default: 1 2 4 8)",
    )
    parser.add_argument(
        "--segment-size",
        type=int,
        default=16000,
        help="Segment size in samples (default: 16000)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=60.0,
        help="Audio duration in seconds (default: 60.0)",
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=3,
        help="Number of runs per thread count (default: 3)",
    )

    args = parser.parse_args()

    if args.device == "cuda" and not torch.cuda.is_available():
        print("CUDA not available, falling back to CPU")
        args.device = "cpu"

    print("faster-enhancer Inference Thread Benchmark")
    print(f"Engine: {args.engine}")
    print(f"Device: {args.device}")
    print(f"Audio duration: {args.duration}s")
    print(f"Thread counts: {args.threads}")
    print(f"Runs per thread count: {args.runs}")

    engine = build_engine(args.engine, args.device, args.latency)
    audio = generate_test_audio(args.duration)

    results = []
    for threads in args.threads:
        result = benchmark_threads(
            engine,
            threads=threads,
            audio=audio,
            segment_size=args.segment_size,
            num_runs=args.runs,
        )
        if result:
            results.append(result)
        else:
            print(f"  Skipping inference_threads={threads} due to errors")

    print_summary(results, args.duration)


if __name__ == "__main__":
    main()
