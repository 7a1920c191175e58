"""Unit tests and toy example for the streaming transcription loop."""

from __future__ import annotations

import unittest
from typing import List

import numpy as np

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.audio.features import LogMelExtractor
from voice_transcriber.decoder import TokenDecoder
from voice_transcriber.pipeline import StreamingConfig, StreamingTranscriber, TranscriptionEngine
from voice_transcriber.pipeline.streaming_loop import as_int16

SOT = 50258
EOT = 50257
VOCAB = {0: "Hello", 1: "Ġworld", 2: "Ġagain"}


def _make_dummy_model(sequences: List[List[int]]):
    """Returns a callable (staged bytes -> token IDs) cycling through sequences."""
    calls = {"n": 0}

    def forward(staged: bytes) -> np.ndarray:
        tokens = sequences[calls["n"] % len(sequences)]
        calls["n"] += 1
        out = np.full(448, EOT, dtype=np.int32)
        out[: len(tokens)] = tokens
        return out

    return forward


def _fake_audio_stream(
    chunk_samples: int,
    num_chunks: int,
    seed: int = 42,
) -> List[np.ndarray]:
    """Fake int16 audio chunks (for testing)."""
    rng = np.random.default_rng(seed)
    return [
        rng.integers(-3000, 3000, chunk_samples).astype(np.int16)
        for _ in range(num_chunks)
    ]


class TestStreamingTranscriber(unittest.TestCase):
    """Tests for StreamingTranscriber."""

    def setUp(self) -> None:
        self.streaming_config = StreamingConfig(
            window_sec=1.0,
            trigger_sec=0.25,
            chunk_sec=0.05,
            sample_rate=16_000,
        )
        self.audio_config = AudioConfig(raw_seconds=0.5, time_steps=50)

    def _engine(self, sequences: List[List[int]]) -> TranscriptionEngine:
        return TranscriptionEngine(
            model_forward=_make_dummy_model(sequences),
            output_shape=(448,),
            extractor=LogMelExtractor(self.audio_config),
            decoder=TokenDecoder(VOCAB),
            streaming_config=self.streaming_config,
        )

    def test_run_delivers_text_per_trigger(self) -> None:
        collected: List[str] = []
        transcriber = StreamingTranscriber(
            self._engine([[SOT, 0, 1, EOT]]),
            on_text=collected.append,
        )
        # 16 chunks x 800 samples = 12800 samples -> 3 triggers of 4000
        chunks = _fake_audio_stream(self.streaming_config.chunk_samples, num_chunks=16)
        transcriber.run(audio_iterator=iter(chunks))
        self.assertEqual(collected, ["Hello world"] * 3)

    def test_transcript_merges_overlapping_windows(self) -> None:
        transcriber = StreamingTranscriber(self._engine([[0, 1], [1, 2]]))
        chunks = _fake_audio_stream(4000, num_chunks=2)
        transcriber.run(audio_iterator=iter(chunks))
        self.assertEqual(transcriber.transcript, "Hello world again")

    def test_run_for_n_results(self) -> None:
        transcriber = StreamingTranscriber(self._engine([[0]]))
        chunks = _fake_audio_stream(2000, num_chunks=20)
        results = transcriber.run_for_n_results(2, iter(chunks))
        self.assertEqual(results, ["Hello", "Hello"])

    def test_stop_from_callback(self) -> None:
        transcriber = StreamingTranscriber(self._engine([[0]]))
        seen: List[str] = []

        def on_text(text: str) -> None:
            seen.append(text)
            transcriber.stop()

        transcriber.on_text = on_text
        transcriber.run(audio_iterator=iter(_fake_audio_stream(4000, num_chunks=5)))
        self.assertEqual(seen, ["Hello"])

    def test_empty_and_float_chunks(self) -> None:
        transcriber = StreamingTranscriber(self._engine([[0]]))
        chunks = [np.zeros(0, dtype=np.int16), np.zeros(4000, dtype=np.float32)]
        results = transcriber.run_for_n_results(1, iter(chunks))
        self.assertEqual(results, ["Hello"])

    def test_as_int16(self) -> None:
        out = as_int16(np.array([[0.5], [-2.0]], dtype=np.float32))
        np.testing.assert_array_equal(out, [16383, -32767])
        self.assertEqual(as_int16(np.array([1, 2], dtype=np.int32)).dtype, np.int16)


def run_toy_example() -> None:
    """Toy: stream fake audio through a dummy model and print each text."""
    print("=== Toy example: streaming transcription ===\n")
    streaming_config = StreamingConfig(window_sec=1.0, trigger_sec=0.25, chunk_sec=0.05)
    engine = TranscriptionEngine(
        model_forward=_make_dummy_model([[SOT, 0, 1, EOT], [1, 2]]),
        output_shape=(448,),
        extractor=LogMelExtractor(AudioConfig(raw_seconds=0.5, time_steps=50)),
        decoder=TokenDecoder(VOCAB),
        streaming_config=streaming_config,
    )
    transcriber = StreamingTranscriber(engine, on_text=lambda s: print("  text:", repr(s)))
    chunks = _fake_audio_stream(streaming_config.chunk_samples, num_chunks=24)
    transcriber.run(audio_iterator=iter(chunks))
    print(f"\nTranscript: {transcriber.transcript!r}")
    print("Done.")


if __name__ == "__main__":
    run_toy_example()
    print("\n--- Running unit tests ---")
    unittest.main(argv=[""], exit=False, verbosity=2)
