"""Command line analysis of WAV recordings.

Splits a recording into non-overlapping FFT-sized frames, runs each frame
through the analysis pipeline and prints one JSON object per frame, followed
by a summary with the rhythm of the whole recording.
"""
import argparse
import json
import sys
import wave
from dataclasses import asdict
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
import numpy as np
from soundsense.audio.models import AnalysisFrame, FrameAnalysis
from soundsense.audio.pipeline import analyze_frame
from soundsense.audio.spatial.distance import DETECTION_RANGES
from soundsense.core.config import Settings
from soundsense.core.logging import logger, setup_logging
from soundsense.services.session import AnalysisSession


def load_wav(path: str) -> Tuple[np.ndarray, Optional[np.ndarray], int]:
    """
    Read a 16 or 32-bit PCM WAV file as float samples in [-1, 1].

    Args:
        path: WAV file path

    Returns:
        Tuple of (left or mono samples, right samples or None, sample rate)
    """
    with wave.open(str(path), "rb") as wav_file:
        sample_rate = wav_file.getframerate()
        channels = wav_file.getnchannels()
        sample_width = wav_file.getsampwidth()
        data = wav_file.readframes(wav_file.getnframes())

    if sample_width == 2:
        audio = np.frombuffer(data, dtype=np.int16).astype(np.float64) / 32768.0
    elif sample_width == 4:
        audio = np.frombuffer(data, dtype=np.int32).astype(np.float64) / 2147483648.0
    else:
        raise ValueError(f"Unsupported sample width: {sample_width} bytes")

    if channels == 1:
        return audio, None, sample_rate

    # Extra channels beyond the first pair are ignored
    audio = audio.reshape(-1, channels)
    return audio[:, 0].copy(), audio[:, 1].copy(), sample_rate


def magnitude_spectrum(samples: np.ndarray, fft_size: int) -> np.ndarray:
    """Hann-windowed magnitude spectrum with fft_size // 2 bins."""
    windowed = samples * np.hanning(len(samples))
    return np.abs(np.fft.rfft(windowed, n=fft_size))[:fft_size // 2]


def iter_frames(
    left: np.ndarray,
    right: Optional[np.ndarray],
    sample_rate: int,
    fft_size: int,
    stream_id: str
) -> Iterator[AnalysisFrame]:
    """Yield consecutive full frames; a trailing partial frame is skipped."""
    for start in range(0, len(left) - fft_size + 1, fft_size):
        samples = left[start:start + fft_size]
        yield AnalysisFrame(
            spectrum=magnitude_spectrum(samples, fft_size),
            samples=samples,
            sample_rate=sample_rate,
            timestamp=start / sample_rate,
            stream_id=stream_id,
            right_samples=None if right is None else right[start:start + fft_size]
        )


def frame_to_dict(result: FrameAnalysis) -> dict:
    return asdict(result)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soundsense",
        description="Classify, locate and time sounds in a WAV recording"
    )
    parser.add_argument("audio_file", help="Path to a 16 or 32-bit PCM WAV file")
    parser.add_argument("--stream-id", help="Stream id reported in the output (default: file name)")
    parser.add_argument("--fft-size", type=int, help="Frame and FFT size in samples")
    parser.add_argument(
        "--detection-mode",
        choices=sorted(DETECTION_RANGES),
        help="Distance range checked for each frame"
    )
    parser.add_argument(
        "--envelope",
        action="store_true",
        help="Detect rhythm on the downsampled envelope instead of raw samples"
    )
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL setting)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    left, right, sample_rate = load_wav(args.audio_file)
    stream_id = args.stream_id or Path(args.audio_file).stem
    logger.info(
        f"Analyzing {args.audio_file}: {len(left) / sample_rate:.1f}s at {sample_rate} Hz, "
        f"{'stereo' if right is not None else 'mono'}"
    )

    # Rhythm needs seconds of audio, so it runs once over the whole recording
    overrides = {"sample_rate": sample_rate, "enable_rhythm": False}
    if args.fft_size:
        overrides["fft_size"] = args.fft_size
    if args.detection_mode:
        overrides["detection_mode"] = args.detection_mode
    if args.envelope:
        overrides["rhythm_use_envelope"] = True
    config = Settings(**overrides)
    session = AnalysisSession(stream_id, config=config)

    frame_count = 0
    for frame in iter_frames(left, right, sample_rate, config.fft_size, stream_id):
        print(json.dumps(frame_to_dict(analyze_frame(frame, session))))
        frame_count += 1

    if frame_count == 0:
        logger.warning(f"Recording is shorter than one {config.fft_size}-sample frame")

    rhythm = session.detect_rhythm(left)
    periodicity = session.periodicity(left)  # beats per second, -1 if not periodic
    summary = {
        "stream_id": stream_id,
        "frames": frame_count,
        "rhythm": asdict(rhythm),
        "periodicity_bpm": periodicity * 60.0 if periodicity > 0 else None
    }
    print(json.dumps(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
