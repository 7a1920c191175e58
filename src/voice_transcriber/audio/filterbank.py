"""Mel filterbank: resource loading, fallback synthesis and projection.

Resource layout: a fixed-length identifying header followed by
n_mels x n_freq_bins little-endian float32 values, row-major by band.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.errors import ResourceLoadFailure, ShapeMismatch

logger = logging.getLogger(__name__)

FILTERBANK_HEADER = b"NESUP"


def _hz_to_mel(hz: float) -> float:
    return 2595 * np.log10(1 + hz / 700)


def _mel_to_hz(mel: np.ndarray) -> np.ndarray:
    return 700 * (10 ** (mel / 2595) - 1)


def mel_filterbank(
    n_mels: int,
    n_fft: int,
    sample_rate: float,
    fmin: float = 0.0,
    fmax: Optional[float] = None,
) -> np.ndarray:
    """Build a triangular Mel filterbank matrix, shape (n_mels, n_fft // 2 + 1)."""
    if fmax is None:
        fmax = sample_rate / 2
    mel_points = np.linspace(
        _hz_to_mel(fmin),
        _hz_to_mel(fmax),
        n_mels + 2,
    )
    hz_points = _mel_to_hz(mel_points)
    n_bins = n_fft // 2 + 1
    bin_points = np.floor((n_fft + 1) * hz_points / sample_rate).astype(int)
    bin_points = np.clip(bin_points, 0, n_bins - 1)

    filters = np.zeros((n_mels, n_bins), dtype=np.float32)
    for i in range(n_mels):
        left, center, right = bin_points[i], bin_points[i + 1], bin_points[i + 2]
        if center > left:
            filters[i, left:center] = (np.arange(left, center) - left) / (center - left)
        if right > center:
            filters[i, center:right] = (right - np.arange(center, right)) / (right - center)
        filters[i, center] = 1.0
    return filters


def read_filterbank(
    path: Union[str, Path],
    n_mels: int,
    n_freq_bins: int,
    header_size: int = len(FILTERBANK_HEADER),
) -> np.ndarray:
    """Read a filterbank resource into a read-only float32 (n_mels, n_freq_bins) array.

    Raises:
        ResourceLoadFailure: Missing, under-sized or non-finite data.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ResourceLoadFailure(f"Cannot read mel filters {path}: {e}") from e

    count = n_mels * n_freq_bins
    data = raw[header_size:]
    if len(data) < count * 4:
        raise ResourceLoadFailure(
            f"Insufficient data in mel filters {path}: "
            f"{len(data)} bytes, expected {count * 4}"
        )
    weights = np.frombuffer(data, dtype="<f4", count=count).reshape(n_mels, n_freq_bins)
    if not np.all(np.isfinite(weights)):
        raise ResourceLoadFailure(f"Non-finite values in mel filters {path}")
    weights = weights.astype(np.float32)
    weights.flags.writeable = False
    return weights


def write_filterbank(
    path: Union[str, Path],
    weights: np.ndarray,
    header: bytes = FILTERBANK_HEADER,
) -> None:
    """Write weights in the resource layout read by read_filterbank."""
    data = np.ascontiguousarray(weights, dtype="<f4").tobytes()
    Path(path).write_bytes(header + data)


class FilterbankProjector:
    """Projects power spectra onto log-Mel bands with a fixed weight matrix.

    Interface:
      projector = FilterbankProjector.from_file("filters.bin")
      log_mel = projector.project(power)   # power: (..., >= n_freq_bins)
    """

    def __init__(
        self,
        weights: np.ndarray,
        log_epsilon: float = 1e-10,
        is_fallback: bool = False,
    ):
        weights = np.array(weights, dtype=np.float32)
        if weights.ndim != 2:
            raise ShapeMismatch(
                f"Filterbank must be 2-D, got shape {weights.shape}",
                actual=weights.shape,
            )
        weights.flags.writeable = False
        self._weights = weights
        self.log_epsilon = log_epsilon
        self.is_fallback = is_fallback

    @classmethod
    def from_file(
        cls,
        path: Optional[Union[str, Path]],
        config: Optional[AudioConfig] = None,
    ) -> "FilterbankProjector":
        """Load weights from a resource, falling back to a synthesized filterbank."""
        config = config or AudioConfig()
        if path is None:
            logger.warning("No mel filters resource given; using fallback mel filters (not optimal)")
            return cls.fallback(config)
        try:
            weights = read_filterbank(
                path,
                config.n_mels,
                config.n_freq_bins,
                header_size=config.filterbank_header_size,
            )
        except ResourceLoadFailure as e:
            logger.warning("%s; using fallback mel filters (not optimal)", e)
            return cls.fallback(config)
        logger.debug("Loaded mel filters: %d x %d from %s", *weights.shape, path)
        return cls(weights, log_epsilon=config.log_epsilon)

    @classmethod
    def fallback(cls, config: Optional[AudioConfig] = None) -> "FilterbankProjector":
        config = config or AudioConfig()
        weights = mel_filterbank(
            config.n_mels,
            config.frame_size,
            float(config.sample_rate),
        )
        return cls(weights, log_epsilon=config.log_epsilon, is_fallback=True)

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    @property
    def n_bands(self) -> int:
        return self._weights.shape[0]

    @property
    def n_freq_bins(self) -> int:
        return self._weights.shape[1]

    def project(self, power: np.ndarray) -> np.ndarray:
        """Dot each band against the non-negative bins, then ln(value + eps).

        Args:
            power: Power spectrum, shape (..., n_fft); only the first
                   n_freq_bins entries are used.

        Returns:
            float64 log-Mel values, shape (..., n_bands).
        """
        power = np.asarray(power, dtype=np.float64)
        if power.shape[-1] < self.n_freq_bins:
            raise ShapeMismatch(
                f"Power spectrum has {power.shape[-1]} bins, need {self.n_freq_bins}",
                actual=power.shape,
                expected=(self.n_freq_bins,),
            )
        mel = power[..., : self.n_freq_bins] @ self._weights.T.astype(np.float64)
        return np.log(mel + self.log_epsilon)
