"""Binaural direction estimation from interaural time and level differences."""
import math
import numpy as np
from soundsense.audio.models import DirectionEstimate
from soundsense.audio.dsp.spectral import EPSILON, rms, round_half_up

ITD_WEIGHT = 0.7
ILD_WEIGHT = 0.3
ILD_DEGREES_PER_DB = 3.0  # rough approximation

# (upper bound in degrees, label), checked in order
DIRECTION_BANDS = (
    (-67.5, "Far Left"),
    (-22.5, "Left"),
    (22.5, "Center"),
    (67.5, "Right"),
)


def angle_to_direction(angle: float) -> str:
    """Map an azimuth angle to a coarse direction label."""
    for upper, label in DIRECTION_BANDS:
        if angle < upper:
            return label
    return "Far Right"


def best_lag(left: np.ndarray, right: np.ndarray, max_lag: int) -> int:
    """
    Brute-force cross-correlation search over [-max_lag, +max_lag].

    For a positive lag the left channel is shifted forward, i.e. it is
    compared against earlier right-channel samples.

    Returns:
        Lag with the highest positive correlation, 0 when none is positive
    """
    n = min(len(left), len(right))
    max_corr = 0.0
    lag_found = 0

    for lag in range(-max_lag, max_lag + 1):
        overlap = n - abs(lag)
        if overlap <= 0:
            continue
        left_start = max(0, lag)
        right_start = max(0, -lag)
        corr = float(np.dot(
            left[left_start:left_start + overlap],
            right[right_start:right_start + overlap]
        ))
        if corr > max_corr:
            max_corr = corr
            lag_found = lag

    return lag_found


class DirectionEstimator:
    """Fuses ITD and ILD cues from a stereo pair into an azimuth."""

    def __init__(
        self,
        sample_rate: int = 48000,
        mic_distance_m: float = 0.17,
        speed_of_sound: float = 343.0,
        max_lag_samples: int = 50
    ):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if mic_distance_m <= 0 or speed_of_sound <= 0:
            raise ValueError("mic_distance_m and speed_of_sound must be positive")

        self.sample_rate = sample_rate
        self.mic_distance_m = mic_distance_m
        self.speed_of_sound = speed_of_sound
        self.max_lag_samples = max_lag_samples

    @property
    def max_itd(self) -> float:
        """Largest physically possible time difference in seconds."""
        return self.mic_distance_m / self.speed_of_sound

    def interaural_time_difference(self, left: np.ndarray, right: np.ndarray) -> float:
        lag = best_lag(
            np.asarray(left, dtype=np.float64),
            np.asarray(right, dtype=np.float64),
            self.max_lag_samples
        )
        return lag / self.sample_rate

    def interaural_level_difference(self, left: np.ndarray, right: np.ndarray) -> float:
        return float(20 * np.log10((rms(left) + EPSILON) / (rms(right) + EPSILON)))

    def itd_angle(self, itd: float) -> float:
        ratio = max(-1.0, min(1.0, itd / self.max_itd))
        return math.degrees(math.asin(ratio))

    @staticmethod
    def ild_angle(ild: float) -> float:
        return ild * ILD_DEGREES_PER_DB

    def estimate(self, left: np.ndarray, right: np.ndarray) -> DirectionEstimate:
        """
        Estimate source direction for one stereo frame.

        Args:
            left: Left channel samples
            right: Right channel samples, synchronized with `left`

        Returns:
            DirectionEstimate; confidence reflects how well the ITD and ILD
            angles agree
        """
        itd = self.interaural_time_difference(left, right)
        ild = self.interaural_level_difference(left, right)

        itd_angle = self.itd_angle(itd)
        ild_angle = self.ild_angle(ild)
        angle = itd_angle * ITD_WEIGHT + ild_angle * ILD_WEIGHT

        confidence = max(0.0, min(100.0, 100.0 - abs(itd_angle - ild_angle)))

        return DirectionEstimate(
            angle_degrees=int(round_half_up(angle)),
            direction_label=angle_to_direction(angle),
            confidence_percent=confidence,
            interaural_time_difference_seconds=itd,
            interaural_level_difference_db=ild
        )
