"""Audio data models and analysis result records."""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import numpy as np
import time


@dataclass
class AnalysisFrame:
    """Represents one synchronized analysis window with metadata."""
    spectrum: np.ndarray  # magnitude per frequency bin
    samples: np.ndarray  # time-domain samples (mono or left channel)
    sample_rate: int
    timestamp: float = field(default_factory=time.time)
    stream_id: str = "default"
    right_samples: Optional[np.ndarray] = None  # right channel for direction analysis

    def __post_init__(self):
        """Validate frame data."""
        self.spectrum = np.asarray(self.spectrum, dtype=np.float64)
        self.samples = np.asarray(self.samples, dtype=np.float64)
        if self.spectrum.ndim != 1:
            raise ValueError(f"Expected 1D spectrum, got shape {self.spectrum.shape}")
        if self.samples.ndim != 1:
            raise ValueError(f"Expected mono (1D array), got shape {self.samples.shape}")
        if self.right_samples is not None:
            self.right_samples = np.asarray(self.right_samples, dtype=np.float64)
            if self.right_samples.ndim != 1:
                raise ValueError(f"Expected 1D right channel, got shape {self.right_samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")

    @property
    def is_stereo(self) -> bool:
        return self.right_samples is not None


@dataclass(frozen=True)
class FeatureVector:
    """Spectral and temporal features of a single frame."""
    spectral_centroid: float  # bin index units
    spectral_rolloff: float  # 0.0 to 1.0
    spectral_bandwidth: float
    zero_crossing_rate: float  # 0.0 to 1.0
    mfcc: Tuple[float, ...]
    energy: float
    spectral_flux: float
    harmonic_ratio: float  # 0.0 to 1.0


@dataclass(frozen=True)
class ClassificationResult:
    """Best-scoring sound category with every per-category score."""
    category: str  # "unknown" when every category scores 0
    confidence: float  # 0-100
    all_confidences: Dict[str, float]


@dataclass(frozen=True)
class DistanceEstimate:
    distance_meters: float
    confidence_percent: float
    unit: str = "meters"


@dataclass(frozen=True)
class DirectionEstimate:
    angle_degrees: int  # negative = left, positive = right
    direction_label: str
    confidence_percent: float
    interaural_time_difference_seconds: float
    interaural_level_difference_db: float


@dataclass(frozen=True)
class Peak:
    """Local amplitude maximum found during rhythm analysis."""
    sample_index: int
    amplitude: float
    time_seconds: float


@dataclass(frozen=True)
class RateClassification:
    """Display band for an estimated rate (EDUCATIONAL DEMO ONLY)."""
    label: str
    color: str
    message: str


@dataclass(frozen=True)
class RhythmResult:
    beats_per_minute: int
    confidence_percent: float
    classification: RateClassification
    disclaimer: str
    beat_count: int = 0


@dataclass
class FrameAnalysis:
    """Everything the pipeline produced for one frame."""
    stream_id: str
    timestamp: float
    classification: Optional[ClassificationResult] = None
    distance: Optional[DistanceEstimate] = None
    direction: Optional[DirectionEstimate] = None
    rhythm: Optional[RhythmResult] = None
    within_detection_range: Optional[bool] = None
    processing_time_ms: float = 0.0
