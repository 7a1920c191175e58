"""Feature extraction: rolling sample buffer, STFT and fixed-shape log-Mel matrix."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.audio.fft import fft
from voice_transcriber.audio.filterbank import FilterbankProjector
from voice_transcriber.audio.spectral import hann_window, pad_or_truncate, power_spectrum
from voice_transcriber.errors import (
    FeatureExtractionFailed,
    InvalidInputSize,
    ShapeInvariantViolation,
    ShapeMismatch,
)

logger = logging.getLogger(__name__)

FrameTransform = Callable[[np.ndarray], np.ndarray]


class RingBuffer:
    """Fixed-size ring buffer for continuous streaming audio."""

    def __init__(self, size: int, dtype: type = np.int16):
        if size < 1:
            raise ValueError("size must be >= 1")
        self.size = size
        self.dtype = dtype
        self._data = np.zeros(size, dtype=dtype)
        self._write_idx = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == self.size

    def push(self, chunk: np.ndarray) -> None:
        """Append a chunk; oldest data is overwritten."""
        chunk = np.asarray(chunk)
        n = len(chunk)
        if n == 0:
            return
        if n >= self.size:
            self._data[:] = chunk[-self.size :].astype(self.dtype)
            self._write_idx = 0
            self._count = self.size
            return
        start = self._write_idx
        end = start + n
        if end <= self.size:
            self._data[start:end] = chunk.astype(self.dtype)
        else:
            head = self.size - start
            self._data[start:] = chunk[:head].astype(self.dtype)
            self._data[: end - self.size] = chunk[head:].astype(self.dtype)
        self._write_idx = end % self.size
        self._count = min(self._count + n, self.size)

    def get_all(self) -> np.ndarray:
        """Return all buffered data in chronological order (a copy)."""
        if self._count == 0:
            return np.array([], dtype=self.dtype)
        if self._count < self.size:
            return self._data[: self._count].copy()
        return np.roll(self._data, -self._write_idx)

    def clear(self) -> None:
        """Reset buffer."""
        self._write_idx = 0
        self._count = 0


@dataclass
class ExtractionReport:
    """Outcome of one extraction under the skip-and-zero-fill policy."""

    n_frames: int
    skipped_frames: List[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped_frames


class LogMelExtractor:
    """Turn raw int16 audio of any length into a fixed [n_mels, time_steps] log-Mel matrix.

    Interface:
      extractor = LogMelExtractor(config, FilterbankProjector.from_file(path))
      features = extractor.extract(samples)          # (80, 3000) float32
      features, report = extractor.extract_with_report(samples)

    Frames that fail (transform precondition, numeric error) are skipped and
    their column stays zero; downstream padding tolerates the gap.
    """

    def __init__(
        self,
        config: Optional[AudioConfig] = None,
        projector: Optional[FilterbankProjector] = None,
        transform: FrameTransform = fft,
    ):
        self.config = config or AudioConfig()
        self.projector = projector or FilterbankProjector.fallback(self.config)
        self.transform = transform
        if self.projector.n_freq_bins != self.config.n_freq_bins:
            raise ShapeMismatch(
                f"Filterbank has {self.projector.n_freq_bins} frequency bins, "
                f"expected {self.config.n_freq_bins}",
                actual=self.projector.weights.shape,
                expected=(self.config.n_mels, self.config.n_freq_bins),
            )

    def normalize(self, samples: np.ndarray) -> np.ndarray:
        """Scale int16 samples to [-1, 1]."""
        audio = np.asarray(samples, dtype=np.float64) / self.config.max_amplitude
        return np.clip(audio, -1.0, 1.0)

    def frame_log_mel(self, frame: np.ndarray) -> np.ndarray:
        """Window -> zero-pad -> FFT -> power -> Mel projection for one frame."""
        windowed = hann_window(frame)
        padded = pad_or_truncate(windowed, self.config.fft_size)
        spectrum = self.transform(padded)
        return self.projector.project(power_spectrum(spectrum))

    def extract_with_report(self, samples: np.ndarray) -> Tuple[np.ndarray, ExtractionReport]:
        """Extract features and report which frames were skipped.

        Raises:
            FeatureExtractionFailed: Input cannot be read as a 1-D sample array.
            ShapeInvariantViolation: Band count differs from config.n_mels.
        """
        try:
            samples = np.asarray(samples)
            if samples.ndim != 1:
                raise ValueError(f"expected 1-D samples, got shape {samples.shape}")
            audio = pad_or_truncate(self.normalize(samples), self.config.raw_length)
        except (TypeError, ValueError) as e:
            raise FeatureExtractionFailed(f"Cannot prepare audio: {e}") from e

        frame_size = self.config.frame_size
        hop = self.config.hop_size
        n_frames = 1 + (len(audio) - frame_size) // hop if len(audio) >= frame_size else 0

        mel = np.zeros((self.projector.n_bands, n_frames), dtype=np.float32)
        report = ExtractionReport(n_frames=n_frames)
        for frame_idx in range(n_frames):
            start = frame_idx * hop
            try:
                mel[:, frame_idx] = self.frame_log_mel(audio[start : start + frame_size])
            except (InvalidInputSize, ArithmeticError, ValueError) as e:
                logger.debug("Failed to process frame %d: %s", frame_idx, e)
                report.skipped_frames.append(frame_idx)

        if report.skipped_frames:
            logger.warning(
                "Skipped %d of %d frames (zero-filled)",
                len(report.skipped_frames),
                n_frames,
            )

        if mel.shape[0] != self.config.n_mels:
            raise ShapeInvariantViolation(
                f"Invalid mel dimension: {mel.shape[0]}, expected {self.config.n_mels}",
                actual=mel.shape,
                expected=self.config.tensor_shape,
            )
        mel = pad_or_truncate(mel, self.config.time_steps, axis=1)
        return mel, report

    def extract(self, samples: np.ndarray) -> np.ndarray:
        """Extract a (n_mels, time_steps) float32 log-Mel matrix."""
        features, _ = self.extract_with_report(samples)
        return features

    def extract_float(self, audio: np.ndarray) -> np.ndarray:
        """Extract from float audio in [-1, 1] by way of int16."""
        audio = np.clip(np.asarray(audio, dtype=np.float64), -1.0, 1.0)
        return self.extract((audio * self.config.max_amplitude).astype(np.int16))
