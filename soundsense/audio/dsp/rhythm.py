"""Periodic pulse (heartbeat-style rhythm) detection.

EDUCATIONAL DEMO ONLY. This is NOT a medical device and must not be used
for diagnosis; the thresholds are heuristic and not clinically validated.
"""
from dataclasses import dataclass
from typing import List, Sequence
import numpy as np
from soundsense.audio.models import Peak, RateClassification, RhythmResult
from soundsense.audio.dsp.spectral import rms, round_half_up

DISCLAIMER = "DEMO ONLY - Not for medical use"
MIN_INTERVALS = 3  # below this, intervals are too few for statistics
NOISE_FLOOR_RMS = 0.01
MIN_PERIODICITY = 0.5


@dataclass(frozen=True)
class RateBand:
    min_bpm: int
    max_bpm: int
    classification: RateClassification

    def contains(self, bpm: int) -> bool:
        return self.min_bpm <= bpm <= self.max_bpm


# Checked in order; the fetal band wins where it overlaps the adult band
RATE_BANDS = (
    RateBand(110, 180, RateClassification(
        label="Possible Fetal Range (DEMO)",
        color="#10b981",
        message="120-160 BPM range detected - EDUCATIONAL DEMO ONLY"
    )),
    RateBand(50, 120, RateClassification(
        label="Adult Range (DEMO)",
        color="#3b82f6",
        message="60-100 BPM range detected - EDUCATIONAL DEMO ONLY"
    )),
)

UNUSUAL_RATE = RateClassification(
    label="Unusual Range (DEMO)",
    color="#f59e0b",
    message="Unusual BPM detected - EDUCATIONAL DEMO ONLY"
)


def dynamic_threshold(samples: np.ndarray, std_multiplier: float = 1.5) -> float:
    """Mean plus `std_multiplier` standard deviations of the rectified signal."""
    rectified = np.abs(np.asarray(samples, dtype=np.float64))
    if len(rectified) == 0:
        return 0.0
    return float(np.mean(rectified) + np.std(rectified) * std_multiplier)


def find_peaks(samples: np.ndarray, sample_rate: int, threshold: float) -> List[Peak]:
    """
    Local maxima above `threshold`.

    A peak must be strictly greater than both neighbors, so the first and
    last samples never qualify and flat tops are skipped.
    """
    x = np.asarray(samples, dtype=np.float64)
    if len(x) < 3:
        return []

    middle = x[1:-1]
    is_peak = (middle > threshold) & (middle > x[:-2]) & (middle > x[2:])
    indices = np.nonzero(is_peak)[0] + 1

    return [
        Peak(sample_index=int(i), amplitude=float(x[i]), time_seconds=int(i) / sample_rate)
        for i in indices
    ]


def consolidate_beats(peaks: Sequence[Peak], min_separation: float, max_separation: float) -> List[Peak]:
    """
    Merge two-part beats (e.g. S1/S2 heart sounds) into single beats.

    When the gap to the next peak falls inside [min_separation,
    max_separation] seconds, only the stronger of the pair is kept.
    """
    consolidated = []
    i = 0
    while i < len(peaks):
        peak = peaks[i]
        if i + 1 < len(peaks):
            following = peaks[i + 1]
            gap = following.time_seconds - peak.time_seconds
            if min_separation <= gap <= max_separation:
                consolidated.append(following if following.amplitude > peak.amplitude else peak)
                i += 2
                continue
        consolidated.append(peak)
        i += 1
    return consolidated


def peak_intervals(peaks: Sequence[Peak]) -> List[float]:
    return [peaks[i].time_seconds - peaks[i - 1].time_seconds for i in range(1, len(peaks))]


def remove_outliers(values: Sequence[float]) -> List[float]:
    """
    Drop values outside 1.5 IQR of the quartiles.

    Quartiles are read directly from the sorted values at floor(n/4) and
    floor(3n/4). Lists shorter than three are returned unchanged.
    """
    values = list(values)
    if len(values) < MIN_INTERVALS:
        return values

    ordered = sorted(values)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    iqr = q3 - q1
    return [v for v in values if q1 - 1.5 * iqr <= v <= q3 + 1.5 * iqr]


def regularity_confidence(intervals: Sequence[float]) -> float:
    """
    Confidence from rhythm regularity: 100 * (1 - coefficient of variation).

    Returns:
        Confidence from 0-100 (rounded), 0 with fewer than three intervals
    """
    if len(intervals) < MIN_INTERVALS:
        return 0.0

    mean = float(np.mean(intervals))
    if mean <= 0:
        return 0.0
    cv = float(np.std(intervals)) / mean
    return round_half_up(max(0.0, min(100.0, (1 - cv) * 100)))


def classify_rate(bpm: int) -> RateClassification:
    for band in RATE_BANDS:
        if band.contains(bpm):
            return band.classification
    return UNUSUAL_RATE


class RhythmEstimator:
    """
    Estimates a pulse rate from peaks in one channel of samples.

    Each call is independent; nothing is remembered between frames.
    """

    def __init__(
        self,
        sample_rate: int = 48000,
        min_bpm: int = 40,
        max_bpm: int = 200,
        consolidate: bool = True,
        min_beat_separation_sec: float = 0.08,
        max_beat_separation_sec: float = 0.20,
        threshold_std_multiplier: float = 1.5
    ):
        """
        Initialize the estimator.

        Args:
            sample_rate: Sample rate of the analyzed samples in Hz
            min_bpm: Lowest reportable rate
            max_bpm: Highest reportable rate
            consolidate: Merge closely paired peaks into one beat
            min_beat_separation_sec: Shortest gap treated as a two-part beat
            max_beat_separation_sec: Longest gap treated as a two-part beat
            threshold_std_multiplier: Peak threshold above the mean level
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        if not 0 < min_bpm <= max_bpm:
            raise ValueError(f"Invalid BPM range: {min_bpm}-{max_bpm}")
        if min_beat_separation_sec > max_beat_separation_sec:
            raise ValueError("min_beat_separation_sec must not exceed max_beat_separation_sec")

        self.sample_rate = sample_rate
        self.min_bpm = min_bpm
        self.max_bpm = max_bpm
        self.consolidate = consolidate
        self.min_beat_separation_sec = min_beat_separation_sec
        self.max_beat_separation_sec = max_beat_separation_sec
        self.threshold_std_multiplier = threshold_std_multiplier

    def detect_beats(self, samples: np.ndarray) -> List[Peak]:
        """Peaks above the dynamic threshold, consolidated if enabled."""
        threshold = dynamic_threshold(samples, self.threshold_std_multiplier)
        peaks = find_peaks(samples, self.sample_rate, threshold)
        if self.consolidate:
            peaks = consolidate_beats(peaks, self.min_beat_separation_sec, self.max_beat_separation_sec)
        return peaks

    def beats_per_minute(self, intervals: Sequence[float]) -> int:
        """
        Rate from the outlier-filtered mean interval.

        Returns:
            BPM clamped to [min_bpm, max_bpm], or 0 without usable intervals
        """
        if not intervals:
            return 0

        filtered = remove_outliers(intervals)
        if not filtered:
            return 0

        mean_interval = float(np.mean(filtered))
        if mean_interval <= 0:
            return 0
        bpm = int(round_half_up(60.0 / mean_interval))
        return max(self.min_bpm, min(self.max_bpm, bpm))

    def analyze(self, samples: np.ndarray) -> RhythmResult:
        """
        Detect rhythm in one frame of samples.

        Args:
            samples: Time-domain samples (or an envelope) at `sample_rate`

        Returns:
            RhythmResult; rate and confidence are 0 when the signal has too
            few beats
        """
        beats = self.detect_beats(samples)
        intervals = peak_intervals(beats)
        bpm = self.beats_per_minute(intervals)

        return RhythmResult(
            beats_per_minute=bpm,
            confidence_percent=regularity_confidence(intervals),
            classification=classify_rate(bpm),
            disclaimer=DISCLAIMER,
            beat_count=len(beats)
        )

    def autocorrelate(self, samples: np.ndarray) -> float:
        """
        Periodicity check by average magnitude difference.

        Lags span [sample_rate / max_bpm, sample_rate / min_bpm) samples.
        For each lag the first half of the buffer is compared with its
        shifted copy; similarity is 1 minus the mean absolute difference.

        Args:
            samples: Time-domain samples

        Returns:
            sample_rate / best lag, or -1 when the signal is too quiet
            (RMS < 0.01) or not periodic enough (best similarity <= 0.5)
        """
        x = np.asarray(samples, dtype=np.float64)
        if rms(x) < NOISE_FLOOR_RMS:
            return -1.0

        half = len(x) // 2
        if half == 0:
            return -1.0
        best_offset = -1
        best_similarity = 0.0

        for offset in range(int(self.sample_rate / self.max_bpm), int(self.sample_rate / self.min_bpm)):
            if offset + half > len(x):
                break
            similarity = 1.0 - np.sum(np.abs(x[:half] - x[offset:offset + half])) / half
            if similarity > best_similarity:
                best_similarity = similarity
                best_offset = offset

        if best_similarity > MIN_PERIODICITY and best_offset > 0:
            return self.sample_rate / best_offset
        return -1.0
