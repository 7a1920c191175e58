"""Unit tests and toy example for the radix-2 FFT kernel."""

from __future__ import annotations

import unittest

import numpy as np

from voice_transcriber.audio.fft import fft, ifft, next_power_of_two
from voice_transcriber.errors import InvalidInputSize


class TestFFT(unittest.TestCase):
    """Tests for fft / ifft."""

    def test_matches_numpy(self) -> None:
        rng = np.random.default_rng(0)
        for n in (1, 2, 8, 64, 512):
            x = rng.standard_normal(n) + 1j * rng.standard_normal(n)
            np.testing.assert_allclose(fft(x), np.fft.fft(x), atol=1e-9)

    def test_real_input(self) -> None:
        x = np.arange(16, dtype=np.float32)
        np.testing.assert_allclose(fft(x), np.fft.fft(x), atol=1e-9)

    def test_zero_input_gives_zero_output(self) -> None:
        for n in (1, 4, 512):
            out = fft(np.zeros(n, dtype=np.complex128))
            self.assertEqual(out.shape, (n,))
            self.assertTrue(np.all(out == 0))

    def test_impulse_is_flat(self) -> None:
        x = np.zeros(32)
        x[0] = 1.0
        np.testing.assert_allclose(fft(x), np.ones(32), atol=1e-12)

    def test_dc_in_bin_zero(self) -> None:
        out = fft(np.full(8, 2.0))
        self.assertAlmostEqual(out[0].real, 16.0)
        np.testing.assert_allclose(out[1:], 0, atol=1e-12)

    def test_round_trip(self) -> None:
        """ifft(fft(x)) recovers x (1/n scaling lives in ifft)."""
        rng = np.random.default_rng(1)
        x = rng.standard_normal(256) + 1j * rng.standard_normal(256)
        np.testing.assert_allclose(ifft(fft(x)), x, atol=1e-9)

    def test_unscaled_round_trip_factor(self) -> None:
        """Applying the forward kernel to the conjugate spectrum scales by n."""
        x = np.arange(8, dtype=np.complex128)
        back = np.conj(fft(np.conj(fft(x))))
        np.testing.assert_allclose(back, 8 * x, atol=1e-9)

    def test_stacked_input(self) -> None:
        rng = np.random.default_rng(2)
        x = rng.standard_normal((5, 16))
        np.testing.assert_allclose(fft(x), np.fft.fft(x, axis=-1), atol=1e-9)

    def test_invalid_sizes(self) -> None:
        for n in (0, 3, 6, 400):
            with self.assertRaises(InvalidInputSize):
                fft(np.zeros(n))

    def test_invalid_size_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            fft(np.zeros(3))

    def test_input_not_modified(self) -> None:
        x = np.arange(8, dtype=np.complex128)
        before = x.copy()
        fft(x)
        np.testing.assert_array_equal(x, before)


class TestNextPowerOfTwo(unittest.TestCase):
    def test_values(self) -> None:
        self.assertEqual(next_power_of_two(0), 1)
        self.assertEqual(next_power_of_two(1), 1)
        self.assertEqual(next_power_of_two(3), 4)
        self.assertEqual(next_power_of_two(400), 512)
        self.assertEqual(next_power_of_two(512), 512)


def run_toy_example() -> None:
    """Toy example: spectrum of a pure tone."""
    print("=== Toy example: FFT of an 8-cycle tone over 64 samples ===\n")
    t = np.arange(64)
    x = np.sin(2 * np.pi * 8 * t / 64)
    mag = np.abs(fft(x))
    print(f"Peak bins: {np.argsort(mag)[-2:]} (expected 8 and 56)")
    print("\nDone.")


if __name__ == "__main__":
    run_toy_example()
    print("\n--- Running unit tests ---")
    unittest.main(argv=[""], exit=False, verbosity=2)
