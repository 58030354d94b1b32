"""Tests for FrameBuffer."""

import numpy as np
import pytest

from faster_enhancer import FrameBuffer, WindowingPolicy


def generate_test_audio(duration=2.0, sr=16000):
    """Generate synthetic test audio."""
    t = np.linspace(0, duration, int(sr * duration), endpoint=False)
    audio = 0.5 * np.sin(2 * np.pi * 220 * t) + 0.2 * np.sin(2 * np.pi * 660 * t)
    return audio.astype(np.float32)


class TestFrameBuffer:
    """Test segment extraction from the stream."""

    def test_fetch_full_segment(self):
        """Test that an in-range segment matches the stream slice."""
        audio = generate_test_audio()
        buffer = FrameBuffer(audio)
        spec = WindowingPolicy(len(audio), 16000, 0.1).segment(1)

        segment = buffer.fetch(spec)

        assert segment.samples.dtype == np.float32
        assert len(segment.samples) == 16000
        assert segment.padding == 0
        np.testing.assert_array_equal(segment.samples, audio[14400:30400])

    def test_fetch_padded_tail(self):
        """Test that samples past the stream end are zero filled."""
        audio = generate_test_audio()
        buffer = FrameBuffer(audio)
        spec = WindowingPolicy(len(audio), 16000, 0.1).segment(2)

        segment = buffer.fetch(spec)

        assert len(segment.samples) == 16000
        assert segment.padding == 12800
        np.testing.assert_array_equal(segment.samples[:3200], audio[28800:])
        assert np.all(segment.samples[3200:] == 0.0)

    def test_fetch_returns_independent_buffer(self):
        """Test that modifying a segment leaves the stream untouched."""
        audio = generate_test_audio(duration=1.0)
        buffer = FrameBuffer(audio)
        spec = WindowingPolicy(len(audio), 16000, 0.1).segment(0)

        segment = buffer.fetch(spec)
        segment.samples[:] = 0.0

        np.testing.assert_array_equal(buffer.stream, audio)
        np.testing.assert_array_equal(buffer.fetch(spec).samples, audio)

    def test_stream_is_read_only_copy(self):
        """Test that the stream is copied and cannot be written."""
        audio = generate_test_audio(duration=0.5)
        buffer = FrameBuffer(audio)

        audio[:] = 1.0
        assert not np.any(buffer.stream == 1.0)

        with pytest.raises(ValueError):
            buffer.stream[0] = 0.0

    def test_len(self):
        """Test that len() is the stream length."""
        buffer = FrameBuffer(np.zeros(1234, dtype=np.float32))

        assert len(buffer) == 1234

    def test_converts_to_float32(self):
        """Test that float64 input is stored as float32."""
        buffer = FrameBuffer(np.linspace(-1, 1, 100))

        assert buffer.stream.dtype == np.float32

    def test_invalid_shape(self):
        """Test that 2D input raises ValueError."""
        with pytest.raises(ValueError, match="stream must be 1-dimensional"):
            FrameBuffer(np.zeros((2, 100)))

    def test_fetch_outside_stream(self):
        """Test that a window starting past the stream raises ValueError."""
        buffer = FrameBuffer(np.zeros(100, dtype=np.float32))
        spec = WindowingPolicy(1000, segment_size=100, overlap_ratio=0.0).segment(5)

        with pytest.raises(ValueError, match="outside stream"):
            buffer.fetch(spec)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
