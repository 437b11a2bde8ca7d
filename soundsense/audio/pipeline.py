"""Main frame analysis pipeline orchestrator."""
import time
from typing import Callable, Optional, TypeVar
from soundsense.audio.models import AnalysisFrame, FrameAnalysis
from soundsense.core.logging import logger
from soundsense.services.session import AnalysisSession
from soundsense.services.session_manager import session_manager

T = TypeVar("T")


def _run_stage(name: str, frame: AnalysisFrame, stage: Callable[[], T]) -> Optional[T]:
    """Run one analysis stage; a failure is logged and yields None."""
    try:
        return stage()
    except Exception as e:
        logger.error(f"Error in {name} stage for stream {frame.stream_id}: {e}", exc_info=True)
        return None


def analyze_frame(frame: AnalysisFrame, session: Optional[AnalysisSession] = None) -> FrameAnalysis:
    """
    Analyze a single frame through every enabled stage.

    The pipeline applies analysis steps in order:
    1. Category classification (feature extraction + rule scoring)
    2. Distance estimation (plus detection range check)
    3. Direction estimation (stereo frames only)
    4. Rhythm detection

    A failing stage leaves its result as None so a live loop keeps running.

    Args:
        frame: Input analysis frame
        session: Session owning the estimators for this source
                 (looked up by stream id if None)

    Returns:
        FrameAnalysis with the results of every stage that ran

    Raises:
        ValueError: If the frame sample rate differs from the session's
    """
    start_time = time.time()
    if session is None:
        session = session_manager.get_or_create(frame.stream_id)
    cfg = session.config

    # Every estimator was built for the session rate
    if frame.sample_rate != session.sample_rate:
        raise ValueError(
            f"Sample rate mismatch for stream {frame.stream_id}: "
            f"frame {frame.sample_rate} Hz != session {session.sample_rate} Hz"
        )

    result = FrameAnalysis(stream_id=frame.stream_id, timestamp=frame.timestamp)

    # Step 1: Classification
    if cfg.enable_classification:
        result.classification = _run_stage(
            "classification", frame,
            lambda: session.classify(frame.spectrum, frame.samples)
        )

    # Step 2: Distance
    if cfg.enable_distance:
        result.distance = _run_stage(
            "distance", frame,
            lambda: session.estimate_distance(frame.spectrum, frame.samples)
        )
        if result.distance is not None:
            result.within_detection_range = session.in_detection_range(result.distance)

    # Step 3: Direction (needs both channels)
    if cfg.enable_direction and frame.is_stereo:
        result.direction = _run_stage(
            "direction", frame,
            lambda: session.estimate_direction(frame.samples, frame.right_samples)
        )

    # Step 4: Rhythm
    if cfg.enable_rhythm:
        result.rhythm = _run_stage(
            "rhythm", frame,
            lambda: session.detect_rhythm(frame.samples)
        )

    # Log processing time if it exceeds threshold
    processing_time = (time.time() - start_time) * 1000  # Convert to ms
    result.processing_time_ms = processing_time
    if processing_time > cfg.processing_timeout_ms:
        logger.warning(f"Frame analysis took {processing_time:.2f}ms (target: {cfg.processing_timeout_ms}ms)")

    return result
