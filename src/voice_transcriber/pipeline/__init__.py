"""Streaming accumulation, inference engine and run loop."""

from voice_transcriber.pipeline.accumulator import (
    AccumulatorState,
    StreamAccumulator,
    StreamingConfig,
)
from voice_transcriber.pipeline.engine import TranscriptionEngine
from voice_transcriber.pipeline.streaming_loop import StreamingTranscriber

__all__ = [
    "AccumulatorState",
    "StreamAccumulator",
    "StreamingConfig",
    "StreamingTranscriber",
    "TranscriptionEngine",
]
