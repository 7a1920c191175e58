"""Streaming transcription core - log-Mel features, tensor staging, token decoding, pipeline."""

from voice_transcriber.postprocess import clean_token_text, merge_transcript

__all__ = ["clean_token_text", "merge_transcript"]
