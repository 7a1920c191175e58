"""Model I/O contract: staged float32 input tensor and integer token output layout."""

from __future__ import annotations

import enum
from typing import Optional, Sequence

import numpy as np

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.errors import ModelInvocationFailed, ShapeMismatch


class TensorStager:
    """Serialize a (n_mels, time_steps) feature matrix into the model's input bytes.

    Layout: float32, native byte order, band-major (row-major [band, time]).
    A single leading batch axis of size 1 is accepted.
    """

    def __init__(self, config: Optional[AudioConfig] = None):
        self.config = config or AudioConfig()

    @property
    def shape(self) -> tuple:
        return self.config.tensor_shape

    @property
    def nbytes(self) -> int:
        return self.config.tensor_nbytes

    def stage(self, features: np.ndarray) -> bytes:
        """Validate each dimension, then serialize.

        Raises:
            ShapeMismatch: Any dimension differs from (n_mels, time_steps).
        """
        arr = np.asarray(features)
        if arr.ndim == 3:
            if arr.shape[0] != 1:
                raise ShapeMismatch(
                    f"Invalid batch dimension: {arr.shape[0]}, expected 1",
                    actual=arr.shape,
                    expected=(1,) + self.shape,
                )
            arr = arr[0]
        if arr.ndim != 2:
            raise ShapeMismatch(
                f"Feature matrix must be 2-D, got shape {arr.shape}",
                actual=arr.shape,
                expected=self.shape,
            )
        for axis, name in enumerate(("mel", "time")):
            if arr.shape[axis] != self.shape[axis]:
                raise ShapeMismatch(
                    f"Invalid {name} dimension: {arr.shape[axis]}, expected {self.shape[axis]}",
                    actual=arr.shape,
                    expected=self.shape,
                )

        data = np.ascontiguousarray(arr, dtype=np.float32).tobytes()
        if len(data) != self.nbytes:
            raise ShapeMismatch(
                f"Staged tensor is {len(data)} bytes, expected {self.nbytes}",
                actual=arr.shape,
                expected=self.shape,
            )
        return data

    def unstage(self, data: bytes) -> np.ndarray:
        """Inverse of stage: bytes -> (n_mels, time_steps) float32 view."""
        if len(data) != self.nbytes:
            raise ShapeMismatch(
                f"Staged tensor is {len(data)} bytes, expected {self.nbytes}",
                expected=self.shape,
            )
        return np.frombuffer(data, dtype=np.float32).reshape(self.shape)


class OutputLayout(enum.Enum):
    """Rank of the model's integer output, fixed once from its declared shape."""

    SEQUENCE = 1
    BATCH_OF_SEQUENCES = 2
    BATCH_OF_BATCHES = 3

    @classmethod
    def from_shape(cls, shape: Sequence[int]) -> "OutputLayout":
        try:
            return cls(len(shape))
        except ValueError:
            raise ShapeMismatch(
                f"Unexpected output shape: {tuple(shape)}",
                actual=tuple(shape),
            ) from None

    def first_sequence(self, output: np.ndarray) -> np.ndarray:
        """Return the first token sequence of a model output with this layout."""
        arr = np.asarray(output)
        if arr.ndim != self.value:
            raise ShapeMismatch(
                f"Model output has rank {arr.ndim}, declared layout {self.name}",
                actual=arr.shape,
            )
        if arr.size and not np.issubdtype(arr.dtype, np.integer):
            raise ModelInvocationFailed(f"Expected integer token IDs, got {arr.dtype}")
        if arr.size == 0:
            return np.zeros(0, dtype=np.int64)
        if self is OutputLayout.BATCH_OF_SEQUENCES:
            arr = arr[0]
        elif self is OutputLayout.BATCH_OF_BATCHES:
            arr = arr[0][0]
        return arr.astype(np.int64)
