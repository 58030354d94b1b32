"""Tests for the FastEnhancer front end."""

import numpy as np
import pytest
import soundfile as sf

from faster_enhancer import (
    CallableEngine,
    FailurePolicy,
    FastEnhancer,
    InvalidConfiguration,
    RunStatistics,
)


def generate_test_audio(duration=2.0, sr=16000):
    """Generate synthetic test audio."""
    t = np.linspace(0, duration, int(sr * duration), endpoint=False)
    audio = 0.3 * np.sin(2 * np.pi * 440 * t) + 0.1 * np.sin(2 * np.pi * 880 * t)
    return audio.astype(np.float32)


@pytest.fixture
def identity_engine():
    return CallableEngine(lambda x: x)


class TestFastEnhancerInitialization:
    """Test FastEnhancer parameter validation."""

    def test_init_defaults(self, identity_engine):
        """Test initialization with default parameters."""
        enhancer = FastEnhancer(identity_engine)

        assert enhancer.sample_rate == 16000
        assert enhancer.config.segment_size == 16000
        assert enhancer.config.inference_threads == 4
        assert enhancer.config.failure_policy == FailurePolicy.ABORT

    def test_init_invalid_engine(self):
        """Test that a plain function is rejected as engine."""
        with pytest.raises(TypeError, match="engine must be EnhancementEngine"):
            FastEnhancer(lambda x: x)

    def test_init_invalid_sample_rate_type(self, identity_engine):
        """Test that a non-integer sample_rate raises TypeError."""
        with pytest.raises(TypeError, match="sample_rate must be int"):
            FastEnhancer(identity_engine, sample_rate=16000.0)

    def test_init_invalid_sample_rate(self, identity_engine):
        """Test that sample_rate <= 0 raises ValueError."""
        with pytest.raises(ValueError, match="sample_rate must be positive"):
            FastEnhancer(identity_engine, sample_rate=0)

    def test_init_invalid_config(self, identity_engine):
        """Test that invalid pipeline parameters raise InvalidConfiguration."""
        with pytest.raises(InvalidConfiguration, match="inference_threads must be positive"):
            FastEnhancer(identity_engine, inference_threads=0)

    def test_init_warm_up(self):
        """Test that warm_up=True runs the engine once."""
        calls = []
        engine = CallableEngine(lambda x: calls.append(len(x)) or x)

        FastEnhancer(engine, segment_size=4000, warm_up=True)

        assert calls == [4000]


class TestFastEnhancerArrays:
    """Test enhancement of in-memory arrays."""

    def test_enhance_array(self, identity_engine):
        """Test enhancement of a numpy array."""
        audio = generate_test_audio()
        enhancer = FastEnhancer(identity_engine, enable_agc=False)

        enhanced, stats = enhancer.enhance(audio)

        assert isinstance(stats, RunStatistics)
        assert len(enhanced) == len(audio)
        np.testing.assert_allclose(enhanced, audio, atol=1e-6)

    def test_enhance_float64_array(self, identity_engine):
        """Test that float64 input is accepted."""
        audio = generate_test_audio(duration=0.5).astype(np.float64)

        enhanced, _ = FastEnhancer(identity_engine, enable_agc=False).enhance(audio)

        assert enhanced.dtype == np.float32
        np.testing.assert_allclose(enhanced, audio, atol=1e-6)

    def test_enhancer_reusable(self, identity_engine):
        """Test that one enhancer handles several inputs."""
        enhancer = FastEnhancer(identity_engine, enable_agc=False)

        first, _ = enhancer.enhance(generate_test_audio(duration=1.0))
        second, _ = enhancer.enhance(generate_test_audio(duration=3.0))

        assert len(first) == 16000
        assert len(second) == 48000

    def test_enhance_2d_array(self, identity_engine):
        """Test that 2D arrays are rejected."""
        with pytest.raises(ValueError, match="audio array must be 1-dimensional"):
            FastEnhancer(identity_engine).enhance(np.zeros((2, 1000), dtype=np.float32))

    def test_enhance_empty_array(self, identity_engine):
        """Test that empty arrays are rejected."""
        with pytest.raises(ValueError, match="audio array cannot be empty"):
            FastEnhancer(identity_engine).enhance(np.zeros(0, dtype=np.float32))

    def test_enhance_invalid_type(self, identity_engine):
        """Test that unsupported input types raise TypeError."""
        with pytest.raises(TypeError, match="audio must be str"):
            FastEnhancer(identity_engine).enhance([0.0, 0.1])


class TestFastEnhancerFiles:
    """Test audio file input and output."""

    def test_enhance_file(self, tmp_path, identity_engine):
        """Test enhancing a WAV file to another WAV file."""
        audio = generate_test_audio()
        input_path = str(tmp_path / "noisy.wav")
        output_path = str(tmp_path / "clean.wav")
        sf.write(input_path, audio, 16000, subtype="FLOAT")

        enhancer = FastEnhancer(identity_engine, enable_agc=False)
        stats = enhancer.enhance_file(input_path, output_path)

        written, sample_rate = sf.read(output_path, dtype="float32")
        assert sample_rate == 16000
        assert stats.segments_total == 3
        np.testing.assert_allclose(written, audio, atol=2.0 / 32767)

    def test_load_stereo_as_mono(self, tmp_path, identity_engine):
        """Test that stereo files are averaged to mono."""
        left = generate_test_audio(duration=0.5)
        stereo = np.stack([left, np.zeros_like(left)], axis=1)
        path = str(tmp_path / "stereo.wav")
        sf.write(path, stereo, 16000, subtype="FLOAT")

        audio = FastEnhancer(identity_engine).load_audio(path)

        assert audio.ndim == 1
        assert audio.dtype == np.float32
        np.testing.assert_allclose(audio, left * 0.5, atol=1e-6)

    def test_load_wrong_sample_rate(self, tmp_path, identity_engine):
        """Test that a file at another sample rate is rejected."""
        path = str(tmp_path / "44k.wav")
        sf.write(path, generate_test_audio(duration=0.1, sr=44100), 44100)

        with pytest.raises(ValueError, match="expected 16000Hz"):
            FastEnhancer(identity_engine).enhance(path)

    def test_load_missing_file(self, identity_engine):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="not found"):
            FastEnhancer(identity_engine).enhance("nonexistent_file.wav")

    def test_load_invalid_file(self, tmp_path, identity_engine):
        """Test that a non-audio file raises ValueError."""
        path = tmp_path / "not_audio.wav"
        path.write_bytes(b"this is not a wav file")

        with pytest.raises(ValueError, match="Failed to load audio file"):
            FastEnhancer(identity_engine).enhance(str(path))

    def test_save_clips_samples(self, tmp_path, identity_engine):
        """Test that samples outside [-1, 1] are clipped on save."""
        path = str(tmp_path / "loud.wav")
        enhancer = FastEnhancer(identity_engine)

        enhancer.save_audio(path, np.array([2.0, -2.0, 0.5], dtype=np.float32), subtype="FLOAT")
        written, _ = sf.read(path, dtype="float32")

        np.testing.assert_allclose(written, [1.0, -1.0, 0.5])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
