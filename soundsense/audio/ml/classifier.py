"""Rule-based sound category classification."""
from typing import Dict, Optional, Sequence
import numpy as np
from soundsense.audio.models import ClassificationResult, FeatureVector
from soundsense.audio.dsp.spectral import SpectralFeatureExtractor
from soundsense.audio.ml.rules import CategoryProfile, ClassifierConfig, DEFAULT_CLASSIFIER_CONFIG

UNKNOWN_CATEGORY = "unknown"


def mfcc_similarity(mfcc: Sequence[float], pattern: Sequence[float], weight: float = 20.0) -> float:
    """
    MFCC pattern bonus for one category.

    Each compared coefficient contributes 1 - |difference|; the sum is
    averaged over the pattern length and scaled by `weight`. Coefficients far
    from the pattern push the bonus below zero.

    Args:
        mfcc: Cepstral coefficients of the frame
        pattern: Reference coefficients for the category
        weight: Points awarded for a perfect match

    Returns:
        Bonus points (at most `weight`), 0.0 when there is no pattern
    """
    if not pattern:
        return 0.0

    n = min(len(mfcc), len(pattern))
    similarity = sum(1.0 - abs(mfcc[i] - pattern[i]) for i in range(n))
    return similarity / len(pattern) * weight


class CategoryClassifier:
    """
    Scores every configured category for a frame and picks the best one.

    Scores are recomputed from scratch on each call; `scores` holds the
    table of the most recent call. Classifying raw arrays goes through the
    classifier's own feature extractor, so one classifier serves one audio
    source.
    """

    def __init__(
        self,
        config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG,
        extractor: Optional[SpectralFeatureExtractor] = None
    ):
        self.config = config
        self.extractor = extractor or SpectralFeatureExtractor()
        self.scores: Dict[str, float] = {name: 0.0 for name in config.categories}

    def score_category(self, features: FeatureVector, profile: CategoryProfile) -> float:
        """
        Score one category from its rules plus the MFCC bonus.

        Args:
            features: Frame features
            profile: Category thresholds and reference pattern

        Returns:
            Confidence from 0-100
        """
        confidence = sum(rule.points for rule in profile.rules if rule.matches(features))
        confidence += mfcc_similarity(features.mfcc, profile.mfcc_pattern, self.config.mfcc_weight)
        return float(max(0.0, min(self.config.max_confidence, confidence)))

    def score(self, features: FeatureVector) -> ClassificationResult:
        """
        Classify an already extracted feature vector.

        Ties keep the category listed first; if nothing scores above zero
        the result is "unknown".
        """
        for profile in self.config.profiles:
            self.scores[profile.name] = self.score_category(features, profile)

        best_category = UNKNOWN_CATEGORY
        best_confidence = 0.0
        for category, confidence in self.scores.items():
            if confidence > best_confidence:
                best_confidence = confidence
                best_category = category

        return ClassificationResult(
            category=best_category,
            confidence=best_confidence,
            all_confidences=dict(self.scores)
        )

    def classify(self, spectrum: np.ndarray, samples: np.ndarray) -> ClassificationResult:
        """
        Extract features from a frame and classify it.

        Args:
            spectrum: Magnitude per frequency bin
            samples: Time-domain samples of the same window

        Returns:
            ClassificationResult with all per-category confidences
        """
        return self.score(self.extractor.extract(spectrum, samples))

    def reset(self) -> None:
        """Clear the score table and the extractor's flux memory."""
        self.extractor.reset()
        for category in self.scores:
            self.scores[category] = 0.0
