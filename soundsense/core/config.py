"""Configuration settings for the SoundSense analysis core."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Audio settings
    sample_rate: int = 48000  # Hz
    fft_size: int = 2048  # spectrum length is fft_size / 2 bins

    # MFCC settings
    mfcc_coefficients: int = 13
    mel_filters: int = 26

    # Distance estimation
    reference_level_db: float = -20.0  # dB measured at 1 meter
    environmental_factor: float = 1.0
    detection_mode: str = "medium"  # near, medium, far or all

    # Direction estimation
    mic_distance_m: float = 0.17  # average head width
    speed_of_sound: float = 343.0  # m/s
    max_itd_lag_samples: int = 50

    # Rhythm detection (EDUCATIONAL DEMO ONLY)
    min_bpm: int = 40
    max_bpm: int = 200
    enable_beat_consolidation: bool = True  # merge two-part heart sounds into one beat
    min_beat_separation_sec: float = 0.08
    max_beat_separation_sec: float = 0.20
    rhythm_use_envelope: bool = False  # analyze the downsampled envelope instead of raw samples
    envelope_attack_sec: float = 0.005
    envelope_release_sec: float = 0.05
    envelope_downsample: int = 128
    bpm_smoothing_alpha: float = 0.7  # Smoothing factor (0.0-1.0, higher = less smoothing)

    # Pipeline stages
    enable_classification: bool = True
    enable_distance: bool = True
    enable_direction: bool = True
    enable_rhythm: bool = True

    # Performance settings
    processing_timeout_ms: int = 20  # Target per-frame processing time

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
