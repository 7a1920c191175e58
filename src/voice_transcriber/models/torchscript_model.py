"""TorchScript model loader for the transcription engine.

The model consumes the staged (1, n_mels, time_steps) float32 tensor and
returns integer token IDs. Use with TranscriptionEngine(model_forward=...,
output_shape=...).
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Tuple

import numpy as np

from voice_transcriber.audio.config import AudioConfig

ModelForward = Callable[[bytes], np.ndarray]


def load_torchscript_model(
    path: str | Path,
    device: Optional[str] = None,
    config: Optional[AudioConfig] = None,
) -> Tuple[ModelForward, Tuple[int, ...]]:
    """Load a TorchScript token model and return a forward callable plus its output shape.

    Args:
        path: Path to a torch.jit-saved module.
        device: Optional device string ('cuda', 'cpu', etc.). If None,
                uses CUDA if available else CPU.
        config: Audio config defining the input tensor shape.

    Returns:
        (model_forward, output_shape):
        - model_forward(staged: bytes) -> token IDs: np.ndarray
          staged is n_mels * time_steps native float32, band-major
        - output_shape: shape of the token output, probed once with a
          silent input
    """
    import torch

    config = config or AudioConfig()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"TorchScript model not found: {path}")

    if device is None:
        device = "cuda" if torch.cuda.is_available() else "cpu"

    model = torch.jit.load(str(path), map_location=torch.device(device))
    model.eval()
    input_shape = (1,) + config.tensor_shape

    def forward(staged: bytes) -> np.ndarray:
        features = np.frombuffer(staged, dtype=np.float32).reshape(input_shape)
        with torch.no_grad():
            x = torch.from_numpy(features.copy()).to(device)
            out = model(x)
            if isinstance(out, (tuple, list)):
                out = out[0]
            return out.cpu().numpy()

    output_shape = tuple(forward(bytes(config.tensor_nbytes)).shape)
    return forward, output_shape
