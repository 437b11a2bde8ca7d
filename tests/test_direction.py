"""Unit tests for binaural direction estimation."""
import pytest
import numpy as np
from soundsense.audio.spatial.direction import DirectionEstimator, angle_to_direction, best_lag


def noise(n: int = 4096, seed: int = 5) -> np.ndarray:
    return np.random.default_rng(seed).standard_normal(n) * 0.3


def delayed(signal: np.ndarray, lag: int) -> np.ndarray:
    """Shift a signal later in time by `lag` samples."""
    return np.concatenate([np.zeros(lag), signal[:-lag]])


def test_identical_channels_are_center():
    """Test identical channels give zero ITD/ILD and a centered source."""
    samples = noise()

    estimate = DirectionEstimator().estimate(samples, samples.copy())

    assert estimate.interaural_time_difference_seconds == 0.0
    assert estimate.interaural_level_difference_db == pytest.approx(0.0)
    assert estimate.angle_degrees == 0
    assert estimate.direction_label == "Center"
    assert estimate.confidence_percent == pytest.approx(100.0)


def test_sound_reaching_right_first():
    """Test a late left channel places the source on the right."""
    right = noise()
    left = delayed(right, 20)

    estimate = DirectionEstimator().estimate(left, right)

    assert estimate.interaural_time_difference_seconds == pytest.approx(20 / 48000)
    assert estimate.angle_degrees > 22
    assert estimate.direction_label == "Right"


def test_sound_reaching_left_first():
    """Test a late right channel places the source on the left."""
    left = noise()
    right = delayed(left, 20)

    estimate = DirectionEstimator().estimate(left, right)

    assert estimate.interaural_time_difference_seconds == pytest.approx(-20 / 48000)
    assert estimate.direction_label == "Left"


def test_itd_uses_configured_sample_rate():
    """Test the lag is converted with the session's sample rate."""
    right = noise()
    left = delayed(right, 20)

    estimate = DirectionEstimator(sample_rate=16000).estimate(left, right)

    assert estimate.interaural_time_difference_seconds == pytest.approx(20 / 16000)


def test_lag_beyond_search_window():
    """Test delays larger than the search window are not found."""
    right = noise()
    left = delayed(right, 80)

    assert abs(best_lag(left, right, max_lag=50)) <= 50
    assert best_lag(left, right, max_lag=100) == 80


def test_level_difference():
    """Test a louder left channel gives a positive ILD."""
    samples = noise()
    estimator = DirectionEstimator()

    ild = estimator.interaural_level_difference(samples * 2.0, samples)

    assert ild == pytest.approx(20 * np.log10(2.0), abs=1e-6)


def test_confidence_drops_when_cues_disagree():
    """Test conflicting ITD and ILD cues lower the confidence."""
    right = noise()
    left = delayed(right, 20)
    estimator = DirectionEstimator()

    agreeing = estimator.estimate(left, right)
    conflicting = estimator.estimate(left * 0.1, right)

    assert conflicting.confidence_percent < agreeing.confidence_percent
    assert 0.0 <= conflicting.confidence_percent <= 100.0


def test_silent_and_mismatched_channels():
    """Test degenerate input does not raise."""
    estimator = DirectionEstimator()

    silent = estimator.estimate(np.zeros(512), np.zeros(512))
    assert silent.direction_label == "Center"
    assert silent.interaural_time_difference_seconds == 0.0

    mismatched = estimator.estimate(noise(100), noise(80, seed=6))
    assert mismatched.direction_label in {"Far Left", "Left", "Center", "Right", "Far Right"}

    empty = estimator.estimate(np.array([]), np.array([]))
    assert empty.angle_degrees == 0


@pytest.mark.parametrize("angle,label", [
    (-90.0, "Far Left"),
    (-67.5, "Left"),
    (-30.0, "Left"),
    (-22.5, "Center"),
    (0.0, "Center"),
    (22.5, "Right"),
    (60.0, "Right"),
    (67.5, "Far Right"),
    (90.0, "Far Right"),
])
def test_angle_to_direction(angle, label):
    """Test the fixed angle bands."""
    assert angle_to_direction(angle) == label


def test_invalid_geometry():
    """Test non-positive configuration is rejected."""
    with pytest.raises(ValueError):
        DirectionEstimator(sample_rate=0)
    with pytest.raises(ValueError):
        DirectionEstimator(mic_distance_m=0.0)
