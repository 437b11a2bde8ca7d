"""Hand-authored scoring tables for the sound category classifier.

These thresholds are heuristics, not a trained model. Each category adds
fixed points for every rule its features satisfy, then an MFCC similarity
bonus against a reference pattern.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from soundsense.audio.models import FeatureVector

CATEGORIES = (
    "human",
    "animal",
    "vehicle",
    "nature",
    "music",
    "emergency",
    "mechanical",
    "electronic",
)


@dataclass(frozen=True)
class ThresholdRule:
    """Awards `points` when lower < feature < upper (open bounds when None)."""
    feature: str
    points: float
    lower: Optional[float] = None
    upper: Optional[float] = None

    def __post_init__(self):
        if self.feature not in FeatureVector.__dataclass_fields__:
            raise ValueError(f"Unknown feature: {self.feature}")

    def matches(self, features: FeatureVector) -> bool:
        value = getattr(features, self.feature)
        if self.lower is not None and not value > self.lower:
            return False
        if self.upper is not None and not value < self.upper:
            return False
        return True


@dataclass(frozen=True)
class CategoryProfile:
    name: str
    rules: Tuple[ThresholdRule, ...] = ()
    mfcc_pattern: Tuple[float, ...] = ()


@dataclass(frozen=True)
class ClassifierConfig:
    profiles: Tuple[CategoryProfile, ...]
    mfcc_weight: float = 20.0  # maximum points from MFCC similarity
    max_confidence: float = 100.0

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.profiles)


DEFAULT_PROFILES = (
    # Human voice: formant region centroid, voiced harmonics, moderate ZCR
    CategoryProfile(
        "human",
        rules=(
            ThresholdRule("spectral_centroid", 30, lower=50, upper=200),
            ThresholdRule("harmonic_ratio", 20, lower=0.3),
            ThresholdRule("zero_crossing_rate", 25, lower=0.02, upper=0.1),
        ),
        mfcc_pattern=(1.2, -0.5, 0.3, -0.2),
    ),
    # Animal sounds: irregular, fast-changing, wide
    CategoryProfile(
        "animal",
        rules=(
            ThresholdRule("spectral_flux", 25, lower=10),
            ThresholdRule("spectral_bandwidth", 25, lower=100),
        ),
        mfcc_pattern=(0.8, 0.2, -0.3, 0.5),
    ),
    # Vehicles: low-frequency dominance, loud
    CategoryProfile(
        "vehicle",
        rules=(
            ThresholdRule("spectral_centroid", 35, upper=100),
            ThresholdRule("energy", 25, lower=0.5),
        ),
        mfcc_pattern=(-0.5, 0.8, 0.2, -0.1),
    ),
    # Nature: broadband
    CategoryProfile(
        "nature",
        rules=(
            ThresholdRule("spectral_rolloff", 30, lower=0.7),
            ThresholdRule("spectral_bandwidth", 30, lower=150),
        ),
        mfcc_pattern=(0.3, 0.3, 0.3, 0.3),
    ),
    # Music: strong harmonic structure
    CategoryProfile(
        "music",
        rules=(
            ThresholdRule("harmonic_ratio", 40, lower=0.5),
            ThresholdRule("spectral_centroid", 30, lower=100, upper=500),
        ),
        mfcc_pattern=(0.9, -0.2, 0.4, -0.3),
    ),
    # Sirens and alarms: narrow high band, very loud
    CategoryProfile(
        "emergency",
        rules=(
            ThresholdRule("spectral_centroid", 35, lower=200, upper=400),
            ThresholdRule("energy", 35, lower=0.7),
        ),
        mfcc_pattern=(1.5, -0.8, 0.2, -0.4),
    ),
    # No rules yet: these only score if a pattern is configured
    CategoryProfile("mechanical"),
    CategoryProfile("electronic"),
)

DEFAULT_CLASSIFIER_CONFIG = ClassifierConfig(profiles=DEFAULT_PROFILES)
