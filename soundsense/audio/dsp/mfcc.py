"""Mel-frequency cepstral coefficients (MFCC) from magnitude spectra."""
import numpy as np

LOG_FLOOR = 1e-10


def hz_to_mel(freq):
    return 2595.0 * np.log10(1.0 + np.asarray(freq, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


class MelFilterBank:
    """
    Triangular Mel filter bank, computed once per session.

    The weight matrix has shape (num_filters, fft_size // 2) and is marked
    read-only so it can be shared by every extraction.
    """

    def __init__(self, num_filters: int = 26, fft_size: int = 2048, sample_rate: int = 48000):
        if num_filters <= 0:
            raise ValueError(f"num_filters must be positive, got {num_filters}")
        if fft_size < 2:
            raise ValueError(f"fft_size must be at least 2, got {fft_size}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        self.num_filters = num_filters
        self.fft_size = fft_size
        self.sample_rate = sample_rate
        self.weights = self._build()
        self.weights.setflags(write=False)

    def _build(self) -> np.ndarray:
        mel_points = np.linspace(hz_to_mel(0.0), hz_to_mel(self.sample_rate / 2), self.num_filters + 2)
        hz_points = mel_to_hz(mel_points)

        freqs = np.arange(self.fft_size // 2) * self.sample_rate / self.fft_size
        weights = np.zeros((self.num_filters, self.fft_size // 2))

        for i in range(self.num_filters):
            start, center, end = hz_points[i], hz_points[i + 1], hz_points[i + 2]
            rising = (freqs >= start) & (freqs <= center)
            falling = (freqs > center) & (freqs <= end)
            weights[i, rising] = (freqs[rising] - start) / (center - start)
            weights[i, falling] = (end - freqs[falling]) / (end - center)

        return weights

    def __len__(self) -> int:
        return self.num_filters

    def apply(self, spectrum: np.ndarray) -> np.ndarray:
        """
        Energy captured by each filter.

        Only the bins present in both the spectrum and the filters are used.

        Args:
            spectrum: Magnitude per frequency bin

        Returns:
            Array of num_filters energies
        """
        spectrum = np.asarray(spectrum, dtype=np.float64)
        n = min(len(spectrum), self.weights.shape[1])
        return self.weights[:, :n] @ spectrum[:n]


class MFCCExtractor:
    """Maps a magnitude spectrum to cepstral coefficients."""

    def __init__(
        self,
        num_coefficients: int = 13,
        num_filters: int = 26,
        fft_size: int = 2048,
        sample_rate: int = 48000
    ):
        """
        Build the filter bank and DCT basis.

        Args:
            num_coefficients: Number of cepstral coefficients returned
            num_filters: Number of triangular Mel filters
            fft_size: FFT size the spectra were computed with
            sample_rate: Sample rate of the analyzed audio in Hz
        """
        if num_coefficients <= 0:
            raise ValueError(f"num_coefficients must be positive, got {num_coefficients}")

        self.num_coefficients = num_coefficients
        self.filter_bank = MelFilterBank(num_filters, fft_size, sample_rate)

        # Unnormalized DCT-II basis: cos(k * (j + 0.5) * pi / num_filters)
        k = np.arange(num_coefficients)[:, None]
        j = np.arange(num_filters)[None, :]
        self._dct_basis = np.cos(k * (j + 0.5) * np.pi / num_filters)

    def log_mel_energies(self, spectrum: np.ndarray) -> np.ndarray:
        return np.log(self.filter_bank.apply(spectrum) + LOG_FLOOR)

    def extract(self, spectrum: np.ndarray) -> np.ndarray:
        """
        Compute MFCCs for one spectrum.

        Args:
            spectrum: Magnitude per frequency bin

        Returns:
            Array of exactly num_coefficients coefficients
        """
        return self._dct_basis @ self.log_mel_energies(spectrum)
