"""Model boundary: input staging, output layout and model loaders."""

from voice_transcriber.models.staging import OutputLayout, TensorStager
from voice_transcriber.models.torchscript_model import ModelForward, load_torchscript_model

__all__ = ["ModelForward", "OutputLayout", "TensorStager", "load_torchscript_model"]
