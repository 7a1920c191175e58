"""Unit tests for filterbank loading, fallback and projection."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import numpy as np

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.audio.filterbank import (
    FILTERBANK_HEADER,
    FilterbankProjector,
    mel_filterbank,
    read_filterbank,
    write_filterbank,
)
from voice_transcriber.errors import ResourceLoadFailure, ShapeMismatch

LOGGER = "voice_transcriber.audio.filterbank"


class TestFilterbankResource(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.config = AudioConfig()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_round_trip_through_file(self) -> None:
        rng = np.random.default_rng(0)
        weights = rng.random((80, 201)).astype(np.float32)
        path = self.tmp / "filters.bin"
        write_filterbank(path, weights)
        self.assertEqual(path.stat().st_size, len(FILTERBANK_HEADER) + 80 * 201 * 4)

        projector = FilterbankProjector.from_file(path, self.config)
        self.assertFalse(projector.is_fallback)
        np.testing.assert_array_equal(projector.weights, weights)

    def test_little_endian_layout(self) -> None:
        weights = np.arange(6, dtype=np.float32).reshape(2, 3)
        path = self.tmp / "small.bin"
        path.write_bytes(b"HEADR" + weights.astype("<f4").tobytes())
        loaded = read_filterbank(path, 2, 3, header_size=5)
        np.testing.assert_array_equal(loaded, weights)
        self.assertFalse(loaded.flags.writeable)

    def test_extra_trailing_bytes_ignored(self) -> None:
        weights = np.ones((2, 3), dtype=np.float32)
        path = self.tmp / "long.bin"
        path.write_bytes(FILTERBANK_HEADER + weights.astype("<f4").tobytes() + b"\x00" * 16)
        np.testing.assert_array_equal(read_filterbank(path, 2, 3), weights)

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(ResourceLoadFailure):
            read_filterbank(self.tmp / "nope.bin", 80, 201)

    def test_undersized_file_raises(self) -> None:
        path = self.tmp / "short.bin"
        path.write_bytes(FILTERBANK_HEADER + b"\x00" * 100)
        with self.assertRaises(ResourceLoadFailure):
            read_filterbank(path, 80, 201)

    def test_non_finite_raises(self) -> None:
        path = self.tmp / "nan.bin"
        path.write_bytes(FILTERBANK_HEADER + np.full(6, np.nan, dtype="<f4").tobytes())
        with self.assertRaises(ResourceLoadFailure):
            read_filterbank(path, 2, 3)

    def test_missing_file_falls_back_with_warning(self) -> None:
        with self.assertLogs(LOGGER, level="WARNING"):
            projector = FilterbankProjector.from_file(self.tmp / "nope.bin", self.config)
        self.assertTrue(projector.is_fallback)
        self.assertEqual(projector.weights.shape, (80, 201))

    def test_undersized_file_falls_back(self) -> None:
        path = self.tmp / "short.bin"
        path.write_bytes(FILTERBANK_HEADER + b"\x00" * 400)
        with self.assertLogs(LOGGER, level="WARNING"):
            projector = FilterbankProjector.from_file(path, self.config)
        self.assertTrue(projector.is_fallback)

    def test_no_path_falls_back(self) -> None:
        with self.assertLogs(LOGGER, level="WARNING"):
            projector = FilterbankProjector.from_file(None)
        self.assertTrue(projector.is_fallback)


class TestMelFilterbank(unittest.TestCase):
    def test_shape_and_range(self) -> None:
        fb = mel_filterbank(80, 400, 16_000.0)
        self.assertEqual(fb.shape, (80, 201))
        self.assertGreaterEqual(fb.min(), 0.0)
        self.assertLessEqual(fb.max(), 1.0)
        self.assertTrue(np.all(fb.max(axis=1) == 1.0))


class TestProjection(unittest.TestCase):
    def test_dot_then_log(self) -> None:
        weights = np.array([[1.0, 0.0, 0.0], [0.5, 0.5, 1.0]], dtype=np.float32)
        projector = FilterbankProjector(weights)
        power = np.array([2.0, 4.0, 1.0, 1000.0])  # bin 3 is beyond n_freq_bins
        out = projector.project(power)
        np.testing.assert_allclose(out, np.log([2.0 + 1e-10, 4.0 + 1e-10]))

    def test_silence_gives_log_epsilon(self) -> None:
        projector = FilterbankProjector.fallback()
        out = projector.project(np.zeros(512))
        self.assertEqual(out.shape, (80,))
        np.testing.assert_allclose(out, np.log(1e-10))

    def test_mirrored_half_ignored(self) -> None:
        projector = FilterbankProjector.fallback()
        power = np.zeros(512)
        power[201:] = 1e6
        np.testing.assert_allclose(projector.project(power), np.log(1e-10))

    def test_stacked_power(self) -> None:
        projector = FilterbankProjector.fallback()
        self.assertEqual(projector.project(np.ones((7, 512))).shape, (7, 80))

    def test_short_spectrum_raises(self) -> None:
        projector = FilterbankProjector.fallback()
        with self.assertRaises(ShapeMismatch):
            projector.project(np.zeros(100))

    def test_weights_read_only(self) -> None:
        projector = FilterbankProjector(np.ones((2, 3)))
        with self.assertRaises(ValueError):
            projector.weights[0, 0] = 5.0

    def test_non_2d_weights_rejected(self) -> None:
        with self.assertRaises(ShapeMismatch):
            FilterbankProjector(np.ones(5))


if __name__ == "__main__":
    unittest.main(verbosity=2)
