"""Transcription engine: accumulate -> log-Mel -> stage -> model -> decode.

The model is an opaque callable (staged bytes -> integer token array) so
TorchScript, ONNX or TFLite runtimes can be plugged in. Its output shape is
declared once at construction and mapped to an OutputLayout.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.audio.features import LogMelExtractor
from voice_transcriber.audio.filterbank import FilterbankProjector
from voice_transcriber.decoder import TokenDecoder
from voice_transcriber.errors import (
    FeatureExtractionFailed,
    ModelInvocationFailed,
    ResourceLoadFailure,
    ShapeMismatch,
)
from voice_transcriber.models.staging import OutputLayout, TensorStager
from voice_transcriber.models.torchscript_model import ModelForward, load_torchscript_model
from voice_transcriber.pipeline.accumulator import StreamAccumulator, StreamingConfig

logger = logging.getLogger(__name__)


class TranscriptionEngine:
    """Sliding-window inference over a continuous int16 stream.

    Interface:
      engine = TranscriptionEngine(
          model_forward=forward,        # bytes -> token IDs
          output_shape=(448,),
          extractor=LogMelExtractor(config, projector),
          decoder=TokenDecoder.from_file("vocab.json"),
      )
      texts = engine.process_chunk(chunk)   # [] until a trigger fires

    When the model, its output layout or the decoder is missing the engine is
    not ready: chunks are still buffered but no trigger fires.
    """

    def __init__(
        self,
        model_forward: Optional[ModelForward] = None,
        output_shape: Optional[Sequence[int]] = None,
        extractor: Optional[LogMelExtractor] = None,
        decoder: Optional[TokenDecoder] = None,
        stager: Optional[TensorStager] = None,
        streaming_config: Optional[StreamingConfig] = None,
        audio_config: Optional[AudioConfig] = None,
    ):
        self.audio_config = audio_config or (extractor.config if extractor else AudioConfig())
        self.streaming_config = streaming_config or StreamingConfig(
            sample_rate=self.audio_config.sample_rate
        )
        self.extractor = extractor or LogMelExtractor(self.audio_config)
        self.stager = stager or TensorStager(self.audio_config)
        self.accumulator = StreamAccumulator(self.streaming_config)
        self.model_forward = model_forward
        self.decoder = decoder
        self.output_shape = tuple(output_shape) if output_shape is not None else None

        self._layout: Optional[OutputLayout] = None
        if self.output_shape is not None:
            try:
                self._layout = OutputLayout.from_shape(self.output_shape)
            except ShapeMismatch as e:
                logger.warning("Model output not usable: %s", e)
        self._ready = False
        self._refresh_ready()

    @classmethod
    def from_resources(
        cls,
        model_path: Union[str, Path],
        vocab_path: Union[str, Path],
        filters_path: Optional[Union[str, Path]] = None,
        device: Optional[str] = None,
        audio_config: Optional[AudioConfig] = None,
        streaming_config: Optional[StreamingConfig] = None,
    ) -> "TranscriptionEngine":
        """Load filterbank, vocabulary and a TorchScript model.

        Filterbank problems fall back to synthesized filters; vocabulary or
        model problems leave the engine not ready.
        """
        audio_config = audio_config or AudioConfig()
        projector = FilterbankProjector.from_file(filters_path, audio_config)
        extractor = LogMelExtractor(audio_config, projector)

        decoder = None
        try:
            decoder = TokenDecoder.from_file(vocab_path)
        except ResourceLoadFailure as e:
            logger.warning("%s; decoding disabled", e)

        model_forward = None
        output_shape = None
        try:
            model_forward, output_shape = load_torchscript_model(
                model_path, device=device, config=audio_config
            )
            logger.debug("Model output shape: %s", output_shape)
        except (ImportError, OSError, RuntimeError, ValueError) as e:
            logger.warning("Error initializing model from %s: %s", model_path, e)

        return cls(
            model_forward=model_forward,
            output_shape=output_shape,
            extractor=extractor,
            decoder=decoder,
            streaming_config=streaming_config,
            audio_config=audio_config,
        )

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def layout(self) -> Optional[OutputLayout]:
        return self._layout

    @property
    def buffer_size(self) -> int:
        return self.accumulator.buffer_size

    def _refresh_ready(self) -> None:
        ready = (
            self.model_forward is not None
            and self._layout is not None
            and self.decoder is not None
        )
        if ready and not self._ready:
            logger.debug("TranscriptionEngine ready")
        elif not ready:
            missing = [
                name
                for name, ok in (
                    ("model", self.model_forward is not None),
                    ("output layout", self._layout is not None),
                    ("decoder", self.decoder is not None),
                )
                if not ok
            ]
            logger.warning("TranscriptionEngine not ready (missing: %s)", ", ".join(missing))
        self._ready = ready

    def reload_vocabulary(self, path: Union[str, Path]) -> bool:
        """Reload the vocabulary; returns True when decoding is enabled again."""
        try:
            self.decoder = TokenDecoder.from_file(path)
        except ResourceLoadFailure as e:
            logger.warning("%s; decoding still disabled", e)
            return False
        self._refresh_ready()
        return self._ready

    def process_chunk(self, samples: np.ndarray) -> List[str]:
        """Buffer a capture chunk and run inference on every trigger it fires.

        Returns the non-empty texts decoded for this chunk (usually zero or one).
        """
        snapshots = self.accumulator.append(
            np.asarray(samples, dtype=np.int16),
            suppress_triggers=not self._ready,
        )
        texts = []
        for snapshot in snapshots:
            logger.debug("Sliding window trigger: %d samples accumulated", len(snapshot))
            text = self.run_inference(snapshot)
            if text:
                texts.append(text)
        return texts

    def run_inference(self, samples: np.ndarray) -> Optional[str]:
        """Features -> staged bytes -> model -> tokens -> text for one window.

        Returns None if the chunk is dropped; "" if it decodes to no speech.
        """
        if not self._ready:
            return None
        start = time.perf_counter()
        try:
            features = self.extractor.extract(samples)
            staged = self.stager.stage(features)
        except ShapeMismatch as e:
            logger.warning("Dropping chunk: %s (actual %s, expected %s)", e, e.actual, e.expected)
            return None
        except FeatureExtractionFailed as e:
            logger.warning("Dropping chunk: %s", e)
            return None
        mel_done = time.perf_counter()
        logger.debug("Mel spectrogram computed in %.0f ms", (mel_done - start) * 1000)

        try:
            output = self._invoke_model(staged)
            tokens = self._layout.first_sequence(output)
        except (ModelInvocationFailed, ShapeMismatch) as e:
            logger.warning("Dropping chunk: %s", e)
            return None
        infer_done = time.perf_counter()
        logger.debug("Inference completed in %.0f ms", (infer_done - mel_done) * 1000)

        text = self.decoder.decode(tokens)
        logger.debug("Total processing time: %.0f ms", (time.perf_counter() - start) * 1000)
        return text

    def _invoke_model(self, staged: bytes) -> np.ndarray:
        try:
            output = self.model_forward(staged)
        except Exception as e:
            raise ModelInvocationFailed(f"Error during model inference: {e}") from e
        if output is None:
            raise ModelInvocationFailed("Model returned no output")
        return np.asarray(output)

    def clear_buffer(self) -> None:
        """Drop buffered audio and reset the trigger counter."""
        self.accumulator.clear()
        logger.debug("Audio buffer cleared")

    def release(self) -> None:
        """Drop the model and buffered audio; the engine is not ready afterwards."""
        self.model_forward = None
        self.accumulator.clear()
        self._ready = False
        logger.debug("TranscriptionEngine resources released")
