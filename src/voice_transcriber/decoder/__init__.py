"""Token decoder for integer model output."""

from voice_transcriber.decoder.token_decoder import SpecialTokens, TokenDecoder, load_vocabulary

__all__ = ["SpecialTokens", "TokenDecoder", "load_vocabulary"]
