"""Level-based source distance estimation."""
from dataclasses import dataclass
from typing import Dict
import numpy as np
from soundsense.audio.models import DistanceEstimate
from soundsense.audio.dsp.spectral import EPSILON, rms, round_half_up

SNR_BINS = 10


@dataclass(frozen=True)
class DetectionRange:
    """Distance window a detection mode is interested in (meters, inclusive)."""
    min_meters: float
    max_meters: float

    def contains(self, distance: float) -> bool:
        return self.min_meters <= distance <= self.max_meters


DETECTION_RANGES: Dict[str, DetectionRange] = {
    "near": DetectionRange(0.0, 5.0),
    "medium": DetectionRange(5.0, 20.0),
    "far": DetectionRange(20.0, 50.0),
    "all": DetectionRange(0.0, 100.0),
}


def get_detection_range(mode: str) -> DetectionRange:
    """Look up a detection range by mode name."""
    try:
        return DETECTION_RANGES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown detection mode {mode!r}, expected one of {sorted(DETECTION_RANGES)}"
        ) from None


def level_db(samples: np.ndarray) -> float:
    """RMS level of the samples in dB (full scale = 0 dB)."""
    return float(20 * np.log10(rms(samples) + EPSILON))


def frequency_correction(spectrum: np.ndarray) -> float:
    """
    Distance multiplier from high/low frequency balance.

    High frequencies attenuate faster with distance, so a spectrum rich in
    high-band energy (upper half of the bins) relative to low-band energy
    (lowest 10% of the bins) points to a closer source.

    Args:
        spectrum: Magnitude per frequency bin

    Returns:
        Correction factor (0.8 to 1.5); 1.5 when the spectrum has fewer than
        ten bins and so no low band to compare against
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    high_band = spectrum[int(len(spectrum) * 0.5):]
    low_band = spectrum[:int(len(spectrum) * 0.1)]
    if len(low_band) == 0:
        return 1.5

    ratio = float(np.mean(high_band)) / (float(np.mean(low_band)) + EPSILON)

    if ratio > 0.5:
        return 0.8
    if ratio > 0.3:
        return 1.0
    if ratio > 0.1:
        return 1.2
    return 1.5


def estimate_snr(spectrum: np.ndarray) -> float:
    """
    Crude SNR from the strongest vs. weakest bins, capped at 100.

    Both sums are divided by 10 even for spectra shorter than that.
    """
    ordered = np.sort(np.asarray(spectrum, dtype=np.float64))[::-1]
    signal = np.sum(ordered[:SNR_BINS]) / SNR_BINS
    noise = np.sum(ordered[-SNR_BINS:]) / SNR_BINS if len(ordered) else 0.0
    return float(min(100.0, signal / (noise + EPSILON) * 10))


class DistanceEstimator:
    """Estimates how far a sound source is from its level and spectrum."""

    def __init__(
        self,
        reference_level_db: float = -20.0,
        environmental_factor: float = 1.0,
        min_level_db: float = -60.0,
        max_level_db: float = 40.0
    ):
        """
        Initialize the estimator.

        Args:
            reference_level_db: Level a source produces at 1 meter
            environmental_factor: Multiplier for room/outdoor conditions
            min_level_db: Level mapped to 0% confidence
            max_level_db: Level mapped to 100% confidence
        """
        if max_level_db <= min_level_db:
            raise ValueError("max_level_db must be greater than min_level_db")

        self.reference_level_db = reference_level_db
        self.environmental_factor = environmental_factor
        self.min_level_db = min_level_db
        self.max_level_db = max_level_db

    def distance_from_level(self, db: float) -> float:
        """Inverse level model: every 20 dB below the reference is 10x farther."""
        return 10 ** ((self.reference_level_db - db) / 20)

    def confidence(self, db: float, spectrum: np.ndarray) -> float:
        """
        Confidence from signal level scaled by spectral clarity.

        Args:
            db: Frame level in dB
            spectrum: Magnitude per frequency bin

        Returns:
            Confidence percentage (0-100, rounded)
        """
        span = self.max_level_db - self.min_level_db
        level_confidence = min(100.0, max(0.0, (db - self.min_level_db) / span * 100.0))
        return round_half_up(level_confidence * estimate_snr(spectrum) / 100.0)

    def estimate(self, spectrum: np.ndarray, samples: np.ndarray) -> DistanceEstimate:
        """
        Estimate distance for one frame.

        Args:
            spectrum: Magnitude per frequency bin
            samples: Time-domain samples of the same window

        Returns:
            DistanceEstimate rounded to 0.1 meters
        """
        db = level_db(samples)
        distance = (
            self.distance_from_level(db)
            * frequency_correction(spectrum)
            * self.environmental_factor
        )

        return DistanceEstimate(
            distance_meters=round_half_up(distance, 1),
            confidence_percent=self.confidence(db, spectrum)
        )
