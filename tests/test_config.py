"""Unit tests for settings and logging setup."""
import logging
import pytest
from soundsense.core.config import Settings
from soundsense.core.logging import logger, setup_logging


def test_default_settings():
    """Test the documented defaults."""
    config = Settings()

    assert config.sample_rate == 48000
    assert config.fft_size == 2048
    assert config.mfcc_coefficients == 13
    assert config.mel_filters == 26
    assert config.reference_level_db == -20.0
    assert config.detection_mode == "medium"
    assert config.min_bpm == 40
    assert config.max_bpm == 200
    assert config.enable_beat_consolidation is True
    assert config.rhythm_use_envelope is False


def test_settings_from_environment(monkeypatch):
    """Test environment variables override defaults."""
    monkeypatch.setenv("SAMPLE_RATE", "16000")
    monkeypatch.setenv("ENABLE_RHYTHM", "false")

    config = Settings()

    assert config.sample_rate == 16000
    assert config.enable_rhythm is False


def test_setup_logging():
    """Test logging setup can be applied more than once and honors a level override."""
    try:
        setup_logging()
        setup_logging("debug")

        assert logging.getLogger().handlers
        assert logger.name == "soundsense"
        assert logger.level == logging.DEBUG
    finally:
        logger.setLevel(logging.NOTSET)


def test_setup_logging_rejects_unknown_level():
    """Test a misspelled level name is reported."""
    with pytest.raises(ValueError):
        setup_logging("LOUD")
