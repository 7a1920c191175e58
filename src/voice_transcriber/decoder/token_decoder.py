"""Token ID -> text decoder for Whisper-style integer model output.

Vocabulary resource: JSON object mapping token string -> integer ID. The
decoder uses the inverse (ID -> token string), built once at load time.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

import numpy as np

from voice_transcriber.errors import ResourceLoadFailure
from voice_transcriber.postprocess import clean_token_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecialTokens:
    """Control token IDs (Whisper multilingual defaults)."""

    start_of_transcript: int = 50258
    end_of_transcript: int = 50257
    no_speech: int = 50362
    timestamp_begin: int = 50364
    timestamp_count: int = 1500
    unknown: str = "<unk>"

    def is_timestamp(self, token_id: int) -> bool:
        return self.timestamp_begin <= token_id <= self.timestamp_begin + self.timestamp_count


def load_vocabulary(path: Union[str, Path]) -> Mapping[int, str]:
    """Load a token -> ID JSON file and return the read-only ID -> token mapping.

    Raises:
        ResourceLoadFailure: Missing file, invalid JSON, non-integer IDs or empty table.
    """
    path = Path(path)
    try:
        mapping = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ResourceLoadFailure(f"Error loading vocabulary from {path}: {e}") from e

    if not isinstance(mapping, dict) or not mapping:
        raise ResourceLoadFailure(f"Vocabulary {path} is not a non-empty JSON object")

    vocab = {}
    for token, token_id in mapping.items():
        if isinstance(token_id, bool) or not isinstance(token_id, int):
            raise ResourceLoadFailure(f"Vocabulary {path}: ID for {token!r} is not an integer")
        vocab[token_id] = token
    logger.debug("Loaded vocabulary: %d tokens from %s", len(vocab), path)
    return MappingProxyType(vocab)


class TokenDecoder:
    """Decode model token IDs to text.

    Interface:
      decoder = TokenDecoder.from_file("vocab.json")
      text = decoder.decode(token_ids)

    Scanning rules: start marker skipped, end marker stops, no-speech marker
    yields "", timestamps skipped, unknown IDs become the unknown placeholder.
    """

    def __init__(
        self,
        vocabulary: Mapping[int, str],
        special: Optional[SpecialTokens] = None,
    ):
        if not vocabulary:
            raise ResourceLoadFailure("Vocabulary is empty")
        self._vocab = MappingProxyType(dict(vocabulary))
        self.special = special or SpecialTokens()

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        special: Optional[SpecialTokens] = None,
    ) -> "TokenDecoder":
        return cls(load_vocabulary(path), special=special)

    @property
    def vocab_size(self) -> int:
        return len(self._vocab)

    def token(self, token_id: int) -> Optional[str]:
        return self._vocab.get(int(token_id))

    def decode(self, token_ids: Iterable[int]) -> str:
        """Decode a 1-D sequence of token IDs to text."""
        special = self.special
        pieces = []
        for token_id in token_ids:
            token_id = int(token_id)
            if token_id == special.start_of_transcript:
                continue
            if token_id == special.end_of_transcript:
                break
            if token_id == special.no_speech:
                return ""
            if special.is_timestamp(token_id):
                continue
            token = self._vocab.get(token_id)
            if token is None:
                logger.debug("Unknown token ID: %d", token_id)
                token = special.unknown
            pieces.append(token)
        return clean_token_text("".join(pieces))

    def decode_logits(self, logits: np.ndarray) -> str:
        """Greedy decode of (seq_len, vocab_size) scores via argmax."""
        logits = np.asarray(logits)
        if logits.ndim != 2:
            raise ValueError(f"logits must be (seq_len, vocab_size), got shape {logits.shape}")
        if logits.shape[0] == 0:
            return ""
        return self.decode(np.argmax(logits, axis=1))

    def decode_batch(self, output: np.ndarray, batch_index: int = 0) -> str:
        """Greedy decode of one item of (batch, seq_len, vocab_size) scores."""
        output = np.asarray(output)
        if output.ndim != 3:
            raise ValueError(f"output must be (batch, seq_len, vocab_size), got shape {output.shape}")
        if not 0 <= batch_index < output.shape[0]:
            logger.error("Invalid batch index: %d (batch size %d)", batch_index, output.shape[0])
            return ""
        return self.decode_logits(output[batch_index])
