"""Registry of analysis sessions, one per audio source."""
import threading
from typing import Dict, List, Optional
from soundsense.audio.ml.rules import ClassifierConfig, DEFAULT_CLASSIFIER_CONFIG
from soundsense.core.config import Settings
from soundsense.core.logging import logger
from soundsense.services.session import AnalysisSession


class SessionManager:
    """
    Hands out the AnalysisSession owning each stream's estimator state.

    Flux memory and BPM history must never mix between sources, so a stream
    id always maps to the same session until it is removed or reset. All
    sessions created here share one Settings and one classifier table.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        classifier_config: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG
    ):
        self.config = config
        self.classifier_config = classifier_config
        self._sessions: Dict[str, AnalysisSession] = {}
        self._lock = threading.Lock()

    def get_or_create(self, stream_id: str) -> AnalysisSession:
        with self._lock:
            session = self._sessions.get(stream_id)
            if session is None:
                session = AnalysisSession(
                    stream_id,
                    config=self.config,
                    classifier_config=self.classifier_config
                )
                self._sessions[stream_id] = session
                logger.info(f"Opened analysis session for stream {stream_id} ({len(self._sessions)} active)")
            return session

    def get(self, stream_id: str) -> Optional[AnalysisSession]:
        with self._lock:
            return self._sessions.get(stream_id)

    def reset(self, stream_id: str) -> bool:
        """
        Start a new recording on an existing stream.

        Returns:
            True if the stream had a session to reset
        """
        with self._lock:
            session = self._sessions.get(stream_id)
        if session is None:
            return False
        session.reset()
        return True

    def remove(self, stream_id: str) -> bool:
        """
        Drop a stream's session when its source goes away.

        Returns:
            True if a session was removed
        """
        with self._lock:
            removed = self._sessions.pop(stream_id, None) is not None
        if removed:
            logger.info(f"Closed analysis session for stream {stream_id}")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def list_stream_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._sessions)

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, stream_id: str) -> bool:
        with self._lock:
            return stream_id in self._sessions


# Process-wide registry used when analyze_frame gets no explicit session
session_manager = SessionManager()
