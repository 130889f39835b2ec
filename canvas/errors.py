"""Exception types raised by the orchestration engine."""


class CanvasError(Exception):
    """Base class for engine errors."""


class TurnValidationError(CanvasError, ValueError):
    """A turn was rejected before any model call was made."""


class ModelInvocationError(CanvasError):
    """The model provider failed after retries were exhausted."""


class StructuredOutputError(CanvasError):
    """The model did not return the required tool call arguments."""


class ArtifactError(CanvasError):
    """An artifact document violated one of its invariants."""
