"""Radix-2 Cooley-Tukey FFT (numpy only).

Interface:
  spectrum = fft(frame)           # len(frame) must be a power of two
  frame = ifft(spectrum)          # inverse, scaled by 1/n

Inputs may be stacked as (..., n); the transform runs along the last axis.
Pure functions, no shared state.
"""

from __future__ import annotations

import numpy as np

from voice_transcriber.errors import InvalidInputSize


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    power = 1
    while power < n:
        power *= 2
    return power


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def fft(values: np.ndarray) -> np.ndarray:
    """Forward FFT of complex (or real) input.

    Args:
        values: Shape (..., n) with n a power of two.

    Returns:
        complex128 array of the same shape, bin 0 = DC.

    Raises:
        InvalidInputSize: If the last axis is not a power of two.
    """
    x = np.asarray(values, dtype=np.complex128)
    if x.ndim == 0 or not _is_power_of_two(x.shape[-1]):
        size = x.shape[-1] if x.ndim else 0
        raise InvalidInputSize(f"FFT input size must be a power of 2, got {size}")
    return _fft(x)


def _fft(x: np.ndarray) -> np.ndarray:
    n = x.shape[-1]
    if n == 1:
        return x.copy()

    # Even and odd halves share one recursive call via a stacking axis
    halves = _fft(np.stack((x[..., ::2], x[..., 1::2]), axis=-2))
    even = halves[..., 0, :]
    odd = halves[..., 1, :]

    twiddle = np.exp(-2j * np.pi * np.arange(n // 2) / n)
    t = twiddle * odd
    return np.concatenate((even + t, even - t), axis=-1)


def ifft(spectrum: np.ndarray) -> np.ndarray:
    """Inverse FFT via the conjugate trick: ifft(X) = conj(fft(conj(X))) / n."""
    x = np.asarray(spectrum, dtype=np.complex128)
    out = np.conj(fft(np.conj(x)))
    return out / x.shape[-1]
