"""Centralized audio and feature extraction configuration.

Encoding standards:
- Audio: mono 16 kHz, signed 16-bit PCM
- Features: 80-bin log-Mel filterbanks, fixed [80, 3000] per 30 s window
- STFT: 25 ms frame / 10 ms hop, zero-padded to the next power of two
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioConfig:
    """Audio capture and feature encoding configuration."""

    # Recording
    sample_rate: int = 16_000
    channels: int = 1  # mono
    dtype: str = "int16"
    max_amplitude: float = 32767.0

    # STFT
    frame_size: int = 400
    hop_size: int = 160

    # Mel filterbanks
    n_mels: int = 80
    log_epsilon: float = 1e-10
    filterbank_header_size: int = 5

    # Model input contract: raw signal length and feature time steps
    raw_seconds: float = 30.0
    time_steps: int = 3000

    @property
    def raw_length(self) -> int:
        """Raw signal length (samples) the extractor normalizes to."""
        return int(self.raw_seconds * self.sample_rate)

    @property
    def n_freq_bins(self) -> int:
        """Non-negative frequency bins kept per frame."""
        return self.frame_size // 2 + 1

    @property
    def fft_size(self) -> int:
        """Transform length: next power of two >= frame_size."""
        size = 1
        while size < self.frame_size:
            size *= 2
        return size

    @property
    def n_frames(self) -> int:
        """Frames produced from a raw_length signal."""
        if self.raw_length < self.frame_size:
            return 0
        return 1 + (self.raw_length - self.frame_size) // self.hop_size

    @property
    def tensor_shape(self) -> tuple:
        return (self.n_mels, self.time_steps)

    @property
    def tensor_nbytes(self) -> int:
        """Byte size of the staged float32 tensor."""
        return self.n_mels * self.time_steps * 4
