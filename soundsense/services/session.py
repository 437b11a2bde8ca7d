"""Per-source analysis session owning one instance of every estimator."""
from collections import deque
from typing import Deque, Optional
import numpy as np
from soundsense.audio.models import (
    ClassificationResult,
    DirectionEstimate,
    DistanceEstimate,
    RhythmResult,
)
from soundsense.audio.dsp.envelope import downsample_envelope, envelope
from soundsense.audio.dsp.mfcc import MFCCExtractor
from soundsense.audio.dsp.rhythm import RhythmEstimator
from soundsense.audio.dsp.spectral import SpectralFeatureExtractor
from soundsense.audio.ml.classifier import CategoryClassifier
from soundsense.audio.ml.rules import ClassifierConfig, DEFAULT_CLASSIFIER_CONFIG
from soundsense.audio.spatial.direction import DirectionEstimator
from soundsense.audio.spatial.distance import DistanceEstimator, get_detection_range
from soundsense.core.config import Settings, settings as default_settings
from soundsense.core.logging import logger

BPM_HISTORY_SIZE = 30


class AnalysisSession:
    """
    Analysis state for a single audio source.

    The session's spectral flux memory and classifier score table must only
    see frames from this source, in time order. Call `reset()` when the
    source starts a new recording.
    """

    def __init__(
        self,
        stream_id: str = "default",
        config: Optional[Settings] = None,
        classifier_config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG
    ):
        """
        Build every estimator from the session configuration.

        Args:
            stream_id: Identifier of the audio source
            config: Settings to use (defaults to the process-wide settings)
            classifier_config: Category scoring tables
        """
        self.stream_id = stream_id
        self.config = config or default_settings
        cfg = self.config

        self.sample_rate = cfg.sample_rate
        self.detection_range = get_detection_range(cfg.detection_mode)

        self.mfcc_extractor = MFCCExtractor(
            num_coefficients=cfg.mfcc_coefficients,
            num_filters=cfg.mel_filters,
            fft_size=cfg.fft_size,
            sample_rate=cfg.sample_rate
        )
        self.classifier = CategoryClassifier(
            config=classifier_config,
            extractor=SpectralFeatureExtractor(self.mfcc_extractor)
        )
        self.distance_estimator = DistanceEstimator(
            reference_level_db=cfg.reference_level_db,
            environmental_factor=cfg.environmental_factor
        )
        self.direction_estimator = DirectionEstimator(
            sample_rate=cfg.sample_rate,
            mic_distance_m=cfg.mic_distance_m,
            speed_of_sound=cfg.speed_of_sound,
            max_lag_samples=cfg.max_itd_lag_samples
        )

        # The envelope path runs at a reduced rate, so it needs its own estimator
        rhythm_rate = cfg.sample_rate
        if cfg.rhythm_use_envelope:
            rhythm_rate = cfg.sample_rate / cfg.envelope_downsample
        self.rhythm_estimator = RhythmEstimator(
            sample_rate=rhythm_rate,
            min_bpm=cfg.min_bpm,
            max_bpm=cfg.max_bpm,
            consolidate=cfg.enable_beat_consolidation,
            min_beat_separation_sec=cfg.min_beat_separation_sec,
            max_beat_separation_sec=cfg.max_beat_separation_sec
        )

        self.bpm_history: Deque[int] = deque(maxlen=BPM_HISTORY_SIZE)
        self.smoothed_bpm: Optional[float] = None

        logger.debug(f"Created analysis session for stream {stream_id} at {cfg.sample_rate} Hz")

    def reset(self) -> None:
        """Start a new audio session: forget flux memory and rate history."""
        self.classifier.reset()
        self.bpm_history.clear()
        self.smoothed_bpm = None
        logger.debug(f"Reset analysis session for stream {self.stream_id}")

    def classify(self, spectrum: np.ndarray, samples: np.ndarray) -> ClassificationResult:
        return self.classifier.classify(spectrum, samples)

    def estimate_distance(self, spectrum: np.ndarray, samples: np.ndarray) -> DistanceEstimate:
        return self.distance_estimator.estimate(spectrum, samples)

    def in_detection_range(self, estimate: DistanceEstimate) -> bool:
        return self.detection_range.contains(estimate.distance_meters)

    def estimate_direction(self, left: np.ndarray, right: np.ndarray) -> DirectionEstimate:
        return self.direction_estimator.estimate(left, right)

    def rhythm_input(self, samples: np.ndarray) -> np.ndarray:
        """Samples as the rhythm estimator expects them (raw or envelope)."""
        if not self.config.rhythm_use_envelope:
            return samples
        env = envelope(
            samples,
            self.sample_rate,
            attack_sec=self.config.envelope_attack_sec,
            release_sec=self.config.envelope_release_sec
        )
        return downsample_envelope(env, self.config.envelope_downsample)

    def detect_rhythm(self, samples: np.ndarray) -> RhythmResult:
        """
        Detect rhythm and update the smoothed rate.

        Readings of 0 (no rhythm found) are not added to the history.

        Args:
            samples: Time-domain samples at the session sample rate

        Returns:
            RhythmResult for this frame alone
        """
        result = self.rhythm_estimator.analyze(self.rhythm_input(samples))
        if result.beats_per_minute > 0:
            self.update_bpm(result.beats_per_minute)
        return result

    def update_bpm(self, bpm: int, alpha: Optional[float] = None) -> float:
        """
        Apply exponential moving average smoothing to BPM readings.

        Args:
            bpm: Latest rate reading
            alpha: Smoothing factor (0.0-1.0, higher = less smoothing)
                   If None, uses config value

        Returns:
            Smoothed BPM
        """
        if alpha is None:
            alpha = self.config.bpm_smoothing_alpha
        alpha = max(0.0, min(1.0, alpha))

        self.bpm_history.append(bpm)
        previous = self.smoothed_bpm if self.smoothed_bpm is not None else float(bpm)
        self.smoothed_bpm = alpha * bpm + (1.0 - alpha) * previous
        return self.smoothed_bpm

    def periodicity(self, samples: np.ndarray) -> float:
        """Autocorrelation rate check on the rhythm input (-1 when not periodic)."""
        return self.rhythm_estimator.autocorrelate(self.rhythm_input(samples))
