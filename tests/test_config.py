"""Tests for EnhancerConfig and configuration helpers."""

import pytest

from faster_enhancer import (
    EnhancerConfig,
    FailurePolicy,
    InvalidConfiguration,
    recommended_overlap_ratio,
    recommended_segment_size,
)


class TestEnhancerConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        """Test default values."""
        config = EnhancerConfig()
        config.validate()

        assert config.segment_size == 16000
        assert config.overlap_ratio == 0.1
        assert config.inference_threads == 4
        assert config.max_retries == 3
        assert config.enable_agc is True
        assert config.agc_target_level == 0.5
        assert config.agc_mode == "peak"
        assert config.inference_timeout is None
        assert config.failure_policy == FailurePolicy.ABORT

    def test_derived_sizes(self):
        """Test overlap_samples and hop_size."""
        config = EnhancerConfig(segment_size=16000, overlap_ratio=0.1)

        assert config.overlap_samples == 1600
        assert config.hop_size == 14400

    def test_failure_policy_from_string(self):
        """Test that a string failure policy is converted to the enum."""
        config = EnhancerConfig(failure_policy="degrade")
        config.validate()

        assert config.failure_policy is FailurePolicy.DEGRADE

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"segment_size": 0}, "segment_size must be positive"),
            ({"segment_size": 1.5}, "segment_size must be int"),
            ({"segment_size": True}, "segment_size must be int"),
            ({"overlap_ratio": 1.0}, "overlap_ratio must be in"),
            ({"overlap_ratio": -0.01}, "overlap_ratio must be in"),
            ({"inference_threads": 0}, "inference_threads must be positive"),
            ({"max_retries": -1}, "max_retries must be non-negative"),
            ({"max_retries": 2.0}, "max_retries must be int"),
            ({"agc_target_level": 0.0}, "agc_target_level must be in"),
            ({"agc_target_level": 1.1}, "agc_target_level must be in"),
            ({"agc_mode": "lufs"}, "agc_mode must be"),
            ({"inference_timeout": 0}, "inference_timeout must be positive"),
            ({"failure_policy": "skip"}, "failure_policy must be"),
        ],
    )
    def test_invalid_values(self, kwargs, match):
        """Test that out-of-range values raise InvalidConfiguration."""
        with pytest.raises(InvalidConfiguration, match=match):
            EnhancerConfig(**kwargs).validate()

    def test_invalid_configuration_is_value_error(self):
        """Test that configuration errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            EnhancerConfig(segment_size=-1).validate()

    def test_zero_retries_allowed(self):
        """Test that max_retries=0 is valid."""
        EnhancerConfig(max_retries=0).validate()


class TestRecommendations:
    """Test recommended segment size and overlap helpers."""

    @pytest.mark.parametrize(
        "sample_rate,expected",
        [(8000, 16000), (16000, 16000), (48000, 48000)],
    )
    def test_recommended_segment_size(self, sample_rate, expected):
        """Test one second of audio with a 16000-sample floor."""
        assert recommended_segment_size(sample_rate) == expected

    @pytest.mark.parametrize(
        "segment_size,expected",
        [(8000, 0.2), (16000, 0.1), (24000, 0.1), (32000, 0.05), (48000, 0.05)],
    )
    def test_recommended_overlap_ratio(self, segment_size, expected):
        """Test that longer segments get smaller overlap ratios."""
        assert recommended_overlap_ratio(segment_size) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
