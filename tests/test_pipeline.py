"""Integration tests for the frame analysis pipeline."""
import logging
import pytest
import numpy as np
from soundsense.audio.models import AnalysisFrame
from soundsense.audio.pipeline import analyze_frame
from soundsense.core.config import Settings
from soundsense.services.session import AnalysisSession
from soundsense.services.session_manager import session_manager


def make_frame(stereo: bool = False, sample_rate: int = 48000, stream_id: str = "test") -> AnalysisFrame:
    rng = np.random.default_rng(3)
    samples = rng.standard_normal(2048) * 0.1
    spectrum = np.abs(np.fft.rfft(samples * np.hanning(2048)))[:1024]
    right = np.roll(samples, 5) if stereo else None
    return AnalysisFrame(
        spectrum=spectrum,
        samples=samples,
        sample_rate=sample_rate,
        stream_id=stream_id,
        right_samples=right
    )


def test_mono_frame():
    """Test a mono frame runs every stage except direction."""
    session = AnalysisSession("test")

    result = analyze_frame(make_frame(), session)

    assert result.stream_id == "test"
    assert result.classification is not None
    assert 0.0 <= result.classification.confidence <= 100.0
    assert result.distance is not None
    assert result.distance.distance_meters > 0
    assert result.within_detection_range == session.detection_range.contains(result.distance.distance_meters)
    assert result.direction is None
    assert result.rhythm is not None
    assert result.processing_time_ms >= 0


def test_stereo_frame_has_direction():
    """Test a stereo frame also gets a direction estimate."""
    result = analyze_frame(make_frame(stereo=True), AnalysisSession("test"))

    assert result.direction is not None
    assert result.direction.direction_label in {"Far Left", "Left", "Center", "Right", "Far Right"}


def test_disabled_stages_are_skipped():
    """Test stage toggles leave their results empty."""
    config = Settings(enable_rhythm=False, enable_direction=False)
    session = AnalysisSession("test", config=config)

    result = analyze_frame(make_frame(stereo=True), session)

    assert result.rhythm is None
    assert result.direction is None
    assert result.classification is not None


def test_failing_stage_does_not_stop_pipeline(monkeypatch, caplog):
    """Test an exception in one stage is logged and the rest still run."""
    session = AnalysisSession("test")

    def boom(spectrum, samples):
        raise RuntimeError("classifier exploded")

    monkeypatch.setattr(session, "classify", boom)

    with caplog.at_level(logging.ERROR):
        result = analyze_frame(make_frame(), session)

    assert result.classification is None
    assert result.distance is not None
    assert result.rhythm is not None
    assert any("classification stage" in r.getMessage() for r in caplog.records)


def test_sample_rate_mismatch_is_rejected():
    """Test a frame at another rate than its session is refused."""
    session = AnalysisSession("test")

    with pytest.raises(ValueError, match="Sample rate mismatch"):
        analyze_frame(make_frame(stereo=True, sample_rate=16000), session)


def test_itd_uses_session_rate():
    """Test a 16 kHz stereo frame is timed at 16 kHz in a matching session."""
    session = AnalysisSession("test", config=Settings(sample_rate=16000))
    frame = make_frame(sample_rate=16000)
    # Left channel lags the right by 5 samples
    frame.right_samples = frame.samples.copy()
    frame.samples = np.concatenate([np.zeros(5), frame.right_samples[:-5]])

    result = analyze_frame(frame, session)

    assert result.direction.interaural_time_difference_seconds == pytest.approx(5 / 16000)


def test_session_looked_up_by_stream_id():
    """Test frames without an explicit session share the stream's session."""
    stream_id = "pipeline-lookup"
    try:
        analyze_frame(make_frame(stream_id=stream_id))
        session = session_manager.get(stream_id)
        assert session is not None

        analyze_frame(make_frame(stream_id=stream_id))
        assert session_manager.get(stream_id) is session
    finally:
        session_manager.remove(stream_id)


def test_frame_validation():
    """Test malformed frames are rejected at construction."""
    with pytest.raises(ValueError):
        AnalysisFrame(spectrum=np.ones(10), samples=np.ones((2, 10)), sample_rate=48000)
    with pytest.raises(ValueError):
        AnalysisFrame(spectrum=np.ones(10), samples=np.ones(10), sample_rate=0)

    frame = AnalysisFrame(spectrum=[1, 2, 3], samples=[0, 1], sample_rate=8000)
    assert frame.spectrum.dtype == np.float64
    assert not frame.is_stereo
