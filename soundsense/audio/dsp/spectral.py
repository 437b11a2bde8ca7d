"""Spectral and temporal feature extraction for sound classification."""
import math
from typing import Optional
import numpy as np
from soundsense.audio.models import FeatureVector
from soundsense.audio.dsp.mfcc import MFCCExtractor

EPSILON = 1e-10
ROLLOFF_THRESHOLD = 0.85
NUM_HARMONICS = 5


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round to `ndigits` decimals with exact halves going up (2.5 -> 3, -2.5 -> -2)."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def spectral_centroid(spectrum: np.ndarray) -> float:
    """
    Energy-weighted mean bin index of the spectrum.

    Args:
        spectrum: Magnitude per frequency bin

    Returns:
        Centroid in bin units, 0.0 for a silent or empty spectrum
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    total = np.sum(spectrum)
    if total <= EPSILON:
        return 0.0

    bins = np.arange(len(spectrum))
    return float(np.sum(bins * spectrum) / total)


def spectral_rolloff(spectrum: np.ndarray, threshold: float = ROLLOFF_THRESHOLD) -> float:
    """
    Fraction of the spectrum below which `threshold` of the energy lies.

    Args:
        spectrum: Magnitude per frequency bin
        threshold: Cumulative energy fraction (default 85%)

    Returns:
        Rolloff as a fractional bin index (0.0 to 1.0)
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    if len(spectrum) == 0:
        return 0.0

    cumulative = np.cumsum(spectrum)
    reached = np.nonzero(cumulative >= np.sum(spectrum) * threshold)[0]
    if len(reached) == 0:
        return 1.0

    return float(reached[0] / len(spectrum))


def spectral_bandwidth(spectrum: np.ndarray) -> float:
    """
    Energy-weighted RMS deviation of bin index from the centroid.

    Args:
        spectrum: Magnitude per frequency bin

    Returns:
        Bandwidth in bin units, 0.0 for a silent spectrum
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    total = np.sum(spectrum)
    if total <= EPSILON:
        return 0.0

    deviation = np.arange(len(spectrum)) - spectral_centroid(spectrum)
    return float(np.sqrt(np.sum(spectrum * deviation ** 2) / total))


def zero_crossing_rate(samples: np.ndarray) -> float:
    """
    Extract zero-crossing rate (ZCR) from time-domain samples.

    A sample counts as positive when it is >= 0, so a frame that sits on
    zero produces no crossings.

    Args:
        samples: Time-domain samples

    Returns:
        Zero-crossing rate (0.0 to 1.0)
    """
    samples = np.asarray(samples, dtype=np.float64)
    if len(samples) < 2:
        return 0.0

    positive = samples >= 0
    crossings = np.count_nonzero(positive[1:] != positive[:-1])
    return float(crossings / len(samples))


def signal_energy(samples: np.ndarray) -> float:
    """Mean of squared samples."""
    samples = np.asarray(samples, dtype=np.float64)
    if len(samples) == 0:
        return 0.0
    return float(np.mean(samples ** 2))


def rms(samples: np.ndarray) -> float:
    """Root mean square level of the samples (0.0 for an empty frame)."""
    return float(np.sqrt(signal_energy(samples)))


def harmonic_ratio(spectrum: np.ndarray) -> float:
    """
    Share of spectral energy sitting on the harmonics of the strongest low bin.

    The candidate fundamental is the loudest bin in the lower half of the
    spectrum (bin 0 excluded); its first five integer multiples that fall
    inside the spectrum are summed and divided by the total energy.

    Args:
        spectrum: Magnitude per frequency bin

    Returns:
        Harmonic ratio (0.0 to 1.0)
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    total = np.sum(spectrum)
    if total <= EPSILON:
        return 0.0

    lower_half = spectrum[1:(len(spectrum) + 1) // 2]
    if len(lower_half) == 0 or np.max(lower_half) <= 0:
        return 0.0
    fundamental = int(np.argmax(lower_half)) + 1

    harmonic_bins = [fundamental * h for h in range(1, NUM_HARMONICS + 1)]
    harmonic_energy = sum(spectrum[b] for b in harmonic_bins if b < len(spectrum))
    return float(harmonic_energy / total)


class SpectralFeatureExtractor:
    """
    Builds a FeatureVector per frame.

    Spectral flux needs the previous frame's spectrum, so each extractor
    keeps that memory for exactly one audio source. Frames must arrive in
    time order and one at a time; call `reset()` when a new audio session
    starts.
    """

    def __init__(self, mfcc_extractor: Optional[MFCCExtractor] = None):
        """
        Initialize the extractor.

        Args:
            mfcc_extractor: Shared MFCC extractor (a default one is built if None)
        """
        self.mfcc_extractor = mfcc_extractor or MFCCExtractor()
        self.previous_spectrum: Optional[np.ndarray] = None

    def reset(self) -> None:
        """Forget the previous spectrum."""
        self.previous_spectrum = None

    def spectral_flux(self, spectrum: np.ndarray) -> float:
        """
        Positive frame-to-frame spectral change.

        Only bins whose magnitude increased contribute. The first frame (or
        a frame whose length differs from the remembered one) is compared
        against silence.

        Args:
            spectrum: Magnitude per frequency bin

        Returns:
            Euclidean norm of the positive differences
        """
        spectrum = np.asarray(spectrum, dtype=np.float64)
        if self.previous_spectrum is None or len(self.previous_spectrum) != len(spectrum):
            self.previous_spectrum = np.zeros(len(spectrum))

        diff = spectrum - self.previous_spectrum
        flux = np.sqrt(np.sum(np.maximum(diff, 0.0) ** 2))

        self.previous_spectrum = spectrum.copy()
        return float(flux)

    def extract(self, spectrum: np.ndarray, samples: np.ndarray) -> FeatureVector:
        """
        Extract all features from one synchronized spectrum/samples pair.

        Args:
            spectrum: Magnitude per frequency bin
            samples: Time-domain samples of the same window

        Returns:
            FeatureVector for the frame
        """
        return FeatureVector(
            spectral_centroid=spectral_centroid(spectrum),
            spectral_rolloff=spectral_rolloff(spectrum),
            spectral_bandwidth=spectral_bandwidth(spectrum),
            zero_crossing_rate=zero_crossing_rate(samples),
            mfcc=tuple(float(c) for c in self.mfcc_extractor.extract(spectrum)),
            energy=signal_energy(samples),
            spectral_flux=self.spectral_flux(spectrum),
            harmonic_ratio=harmonic_ratio(spectrum)
        )
