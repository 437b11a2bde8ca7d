"""Amplitude envelope follower for pulse detection."""
import math
import numpy as np


def envelope(
    samples: np.ndarray,
    sample_rate: int,
    attack_sec: float = 0.005,
    release_sec: float = 0.05
) -> np.ndarray:
    """
    Attack/release envelope of the rectified signal.

    The envelope rises quickly towards louder input and decays slowly
    when the input falls, so each heart sound becomes one smooth bump.

    Args:
        samples: Time-domain samples
        sample_rate: Sample rate in Hz
        attack_sec: Rise time constant
        release_sec: Decay time constant

    Returns:
        Envelope with the same length as `samples`
    """
    attack = math.exp(-1.0 / (sample_rate * attack_sec))
    release = math.exp(-1.0 / (sample_rate * release_sec))

    rectified = np.abs(np.asarray(samples, dtype=np.float64))
    out = np.zeros_like(rectified)
    env = 0.0
    for i, x in enumerate(rectified):
        coeff = attack if x > env else release
        env = x + (env - x) * coeff
        out[i] = env

    return out


def downsample_envelope(env: np.ndarray, factor: int = 128) -> np.ndarray:
    """
    Average consecutive blocks of `factor` samples.

    A trailing partial block is dropped. The result runs at
    sample_rate / factor.
    """
    env = np.asarray(env, dtype=np.float64)
    n = len(env) // factor
    if n <= 0:
        return np.zeros(0)
    return env[: n * factor].reshape(n, factor).mean(axis=1)
