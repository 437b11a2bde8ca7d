"""Unit tests for analysis sessions and the session registry."""
import pytest
import numpy as np
from soundsense.core.config import Settings
from soundsense.services.session import AnalysisSession
from soundsense.services.session_manager import SessionManager
from soundsense.audio.ml.rules import CategoryProfile, ClassifierConfig


def burst_train(sample_rate: int, period_sec: float, offset_sec: float, count: int,
                burst_samples: int, length_sec: float) -> np.ndarray:
    """Short tone bursts repeating every `period_sec` seconds."""
    signal = np.zeros(int(length_sec * sample_rate))
    tone = np.sin(2 * np.pi * 400 * np.arange(burst_samples) / sample_rate)
    for k in range(count):
        start = int(round((offset_sec + k * period_sec) * sample_rate))
        signal[start:start + burst_samples] = tone
    return signal


def test_session_threads_configuration():
    """Test every estimator is built from the session settings."""
    config = Settings(sample_rate=16000, fft_size=512, mic_distance_m=0.2, detection_mode="near")

    session = AnalysisSession("mic-1", config=config)

    assert session.direction_estimator.sample_rate == 16000
    assert session.direction_estimator.mic_distance_m == 0.2
    assert session.rhythm_estimator.sample_rate == 16000
    assert session.mfcc_extractor.filter_bank.weights.shape == (26, 256)
    assert session.classifier.extractor.mfcc_extractor is session.mfcc_extractor
    assert session.detection_range.max_meters == 5.0


def test_unknown_detection_mode():
    """Test an unknown detection mode fails at construction."""
    with pytest.raises(ValueError):
        AnalysisSession(config=Settings(detection_mode="ai"))


def test_reset_clears_history():
    """Test reset forgets flux memory and rate history."""
    session = AnalysisSession()
    spectrum = np.ones(1024)
    session.classify(spectrum, np.zeros(2048))
    session.update_bpm(120)

    session.reset()

    assert session.classifier.extractor.previous_spectrum is None
    assert len(session.bpm_history) == 0
    assert session.smoothed_bpm is None


def test_bpm_smoothing():
    """Test BPM readings are smoothed with an exponential moving average."""
    session = AnalysisSession(config=Settings(bpm_smoothing_alpha=0.7))

    assert session.update_bpm(120) == pytest.approx(120.0)
    assert session.update_bpm(100) == pytest.approx(106.0)
    assert list(session.bpm_history) == [120, 100]


def test_detect_rhythm_skips_empty_readings():
    """Test frames without a rhythm do not touch the smoothed rate."""
    session = AnalysisSession(config=Settings(sample_rate=1000))

    result = session.detect_rhythm(np.zeros(4000))

    assert result.beats_per_minute == 0
    assert session.smoothed_bpm is None

    pulses = np.zeros(5000)
    pulses[250::500] = 1.0
    result = session.detect_rhythm(pulses)

    assert result.beats_per_minute == 120
    assert session.smoothed_bpm == pytest.approx(120.0)


def test_rhythm_on_envelope():
    """Test rhythm detection on the downsampled envelope."""
    config = Settings(sample_rate=8000, rhythm_use_envelope=True, envelope_downsample=80)
    session = AnalysisSession(config=config)
    # One burst per 10 ms envelope block, every 0.5 s
    samples = burst_train(8000, period_sec=0.5, offset_sec=0.25, count=8,
                          burst_samples=80, length_sec=4.0)

    result = session.detect_rhythm(samples)

    assert session.rhythm_estimator.sample_rate == pytest.approx(100.0)
    assert len(session.rhythm_input(samples)) == 400
    assert result.beat_count == 8
    assert result.beats_per_minute == 120


def test_periodicity_check():
    """Test the autocorrelation check through the session."""
    session = AnalysisSession(config=Settings(sample_rate=1000))

    assert session.periodicity(np.zeros(4000)) == -1


def test_session_manager_lifecycle():
    """Test sessions are created once per stream and can be removed."""
    manager = SessionManager(config=Settings(sample_rate=16000))

    first = manager.get_or_create("left-mic")
    again = manager.get_or_create("left-mic")
    other = manager.get_or_create("right-mic")

    assert first is again
    assert first is not other
    assert first.sample_rate == 16000
    assert manager.count() == 2
    assert sorted(manager.list_stream_ids()) == ["left-mic", "right-mic"]

    assert manager.remove("left-mic") is True
    assert manager.remove("missing") is False

    assert manager.get("left-mic") is None
    assert manager.get("right-mic") is other
    assert manager.count() == 1


def test_session_manager_reset_and_clear():
    """Test a stream can restart its recording without losing its session."""
    manager = SessionManager(config=Settings(sample_rate=1000))
    session = manager.get_or_create("stethoscope")
    session.update_bpm(120)

    assert "stethoscope" in manager
    assert manager.reset("stethoscope") is True
    assert manager.reset("missing") is False
    assert session.smoothed_bpm is None
    assert manager.get("stethoscope") is session

    manager.clear()

    assert manager.count() == 0
    assert "stethoscope" not in manager


def test_session_manager_shares_classifier_tables():
    """Test sessions are built with the manager's classifier table."""
    config = ClassifierConfig(profiles=(CategoryProfile("hum"),))
    manager = SessionManager(classifier_config=config)

    session = manager.get_or_create("line-in")

    assert session.classifier.config is config
    assert set(session.classifier.scores) == {"hum"}
