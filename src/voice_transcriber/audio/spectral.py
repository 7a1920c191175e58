"""Windowing, power spectrum and fixed-length normalization."""

import numpy as np


def hann_window(signal: np.ndarray) -> np.ndarray:
    """Multiply signal by a symmetric Hann window 0.5 * (1 - cos(2*pi*i / (n-1)))."""
    x = np.asarray(signal, dtype=np.float64)
    n = x.shape[-1]
    if n == 0:
        return x.copy()
    if n == 1:
        # Single sample: window is 1
        return x.copy()
    i = np.arange(n)
    window = 0.5 * (1.0 - np.cos(2.0 * np.pi * i / (n - 1)))
    return x * window


def power_spectrum(spectrum: np.ndarray) -> np.ndarray:
    """Elementwise real^2 + imag^2."""
    z = np.asarray(spectrum)
    return z.real ** 2 + z.imag ** 2


def pad_or_truncate(values: np.ndarray, length: int, axis: int = -1) -> np.ndarray:
    """Zero-pad or cut `values` to `length` along `axis`.

    Equal length returns the input unchanged. Other axes are never touched:
    the raw signal is normalized along its only axis, the feature matrix along
    time (axis -1), never along bands.
    """
    arr = np.asarray(values)
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    current = arr.shape[axis]
    if current == length:
        return arr
    if current > length:
        index = [slice(None)] * arr.ndim
        index[axis] = slice(0, length)
        return arr[tuple(index)].copy()
    pad = [(0, 0)] * arr.ndim
    pad[axis] = (0, length - current)
    return np.pad(arr, pad, mode="constant", constant_values=0)
