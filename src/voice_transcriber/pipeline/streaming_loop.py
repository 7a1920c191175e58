"""End-to-end streaming loop: capture -> engine -> transcript -> callback.

Streaming: 30 s rolling context, inference every 3 s of new audio. Inference
runs inline on the loop's thread, so a slow model delays the next chunk read
(the capture queue absorbs it).
"""

from __future__ import annotations

from typing import Callable, Iterator, List, Optional

import numpy as np

from voice_transcriber.audio import AudioCollector
from voice_transcriber.pipeline.engine import TranscriptionEngine
from voice_transcriber.postprocess import merge_transcript

TextCallback = Callable[[str], None]


def as_int16(chunk: np.ndarray) -> np.ndarray:
    """Coerce a capture chunk to 1-D int16; float chunks are read as [-1, 1]."""
    chunk = np.asarray(chunk).reshape(-1)
    if np.issubdtype(chunk.dtype, np.floating):
        return (np.clip(chunk, -1.0, 1.0) * 32767).astype(np.int16)
    return chunk.astype(np.int16)


class StreamingTranscriber:
    """Runs the capture loop and delivers decoded text.

    Interface:
      transcriber = StreamingTranscriber(engine, on_text=print)
      transcriber.run()   # blocks; use stop() from another thread or pass audio_iterator

    Each decoded window is passed to on_text and merged into `transcript`
    (consecutive windows overlap, so repeated words are folded).
    """

    def __init__(
        self,
        engine: TranscriptionEngine,
        on_text: Optional[TextCallback] = None,
        audio_collector: Optional[AudioCollector] = None,
    ):
        self.engine = engine
        self.on_text = on_text or (lambda s: None)
        self.audio_collector = audio_collector or AudioCollector(engine.audio_config)
        self.transcript = ""
        self._stopped = False

    def stop(self) -> None:
        """Signal the run loop to exit (checked each iteration)."""
        self._stopped = True

    def _handle_chunk(self, chunk: np.ndarray) -> List[str]:
        chunk = as_int16(chunk)
        if chunk.size == 0:
            return []
        texts = self.engine.process_chunk(chunk)
        for text in texts:
            self.transcript = merge_transcript(self.transcript, text)
            self.on_text(text)
        return texts

    def run(
        self,
        audio_iterator: Optional[Iterator[np.ndarray]] = None,
        device: Optional[int] = None,
    ) -> None:
        """Run the streaming loop until stopped or iterator exhausted.

        Args:
            audio_iterator: If provided, use this as the source of int16 audio
                chunks. If None, use the microphone via
                audio_collector.record_stream(chunk_sec).
            device: Microphone device index when using live audio (ignored if
                audio_iterator is provided).
        """
        self._stopped = False
        if audio_iterator is None:
            audio_iterator = self.audio_collector.record_stream(
                chunk_duration_sec=self.engine.streaming_config.chunk_sec,
                device=device,
            )
        for chunk in audio_iterator:
            if self._stopped:
                break
            self._handle_chunk(chunk)

    def run_for_n_results(
        self,
        n: int,
        audio_iterator: Iterator[np.ndarray],
    ) -> list[str]:
        """Run until n texts were produced or the iterator ends; used for tests."""
        self._stopped = False
        results: list[str] = []
        for chunk in audio_iterator:
            if len(results) >= n:
                break
            results.extend(self._handle_chunk(chunk))
        return results[:n]
