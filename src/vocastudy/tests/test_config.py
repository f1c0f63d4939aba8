"""Tests for configuration settings."""
import os

import pytest

from vocastudy.config import Settings, StudySettings, settings


def test_settings_defaults():
    """Test default study settings values."""
    study = StudySettings()

    assert study.options_per_question == 4
    assert study.correct_delay_ms == 1000
    assert study.incorrect_delay_ms == 2000
    assert study.comprehensive_delay_ms == 1000
    assert study.pronounce_delay_ms == 300
    assert study.hint_length == 2
    assert study.hint_policy == "none"


def test_global_settings_are_valid():
    """Test that the loaded settings pass validation."""
    settings.validate()


def test_rng_seed_from_env():
    """Test that the seed is read from the environment."""
    os.environ["RNG_SEED"] = "42"
    try:
        assert StudySettings().rng_seed == 42
    finally:
        del os.environ["RNG_SEED"]

    assert StudySettings().rng_seed is None


@pytest.mark.parametrize(
    "field, value",
    [
        ("options_per_question", 1),
        ("correct_delay_ms", -1),
        ("pronounce_delay_ms", -5),
        ("hint_length", 0),
        ("hint_policy", "half_credit"),
    ],
)
def test_invalid_study_settings(field, value):
    """Test that invalid values are rejected."""
    test_settings = Settings()
    setattr(test_settings.study, field, value)

    with pytest.raises(ValueError):
        test_settings.validate()


if __name__ == "__main__":
    pytest.main([__file__])
