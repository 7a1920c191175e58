"""Failure taxonomy for the feature / staging / decoding pipeline.

Every failure degrades to "no output for this chunk"; none is process-fatal.
"""


class TranscriptionError(Exception):
    """Base class for pipeline failures."""


class InvalidInputSize(TranscriptionError, ValueError):
    """Transform input length is not a power of two."""


class FeatureExtractionFailed(TranscriptionError):
    """Feature matrix could not be produced for a chunk."""


class ShapeMismatch(TranscriptionError, ValueError):
    """Tensor shape differs from the model contract."""

    def __init__(self, message: str, actual: tuple = (), expected: tuple = ()):
        super().__init__(message)
        self.actual = tuple(actual)
        self.expected = tuple(expected)


class ShapeInvariantViolation(ShapeMismatch):
    """Feature extractor produced a band count other than the contract value."""


class ResourceLoadFailure(TranscriptionError):
    """Filterbank or vocabulary resource is missing or corrupt."""


class ModelInvocationFailed(TranscriptionError):
    """The opaque model raised or returned an unusable output."""
