"""Logging configuration for the analysis core."""
import logging
import sys
from typing import Optional
from soundsense.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for a process running the analysis core.

    Log records go to stderr so stdout stays free for analysis output.

    Args:
        level: Level name overriding `settings.log_level` (e.g. "DEBUG")
    """
    level_name = (level or settings.log_level).upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    # basicConfig is a no-op once the root logger has handlers
    logger.setLevel(numeric_level)


logger = logging.getLogger("soundsense")
