"""Exceptions raised by the gain-penalization pipeline."""


class GainPenalizationError(Exception):
    """Base class for pipeline errors."""
    pass


class DegenerateRelevance(GainPenalizationError):
    """Raised when relevance scores cannot be normalized (maximum is zero)."""
    pass


class InvalidHyperparameter(GainPenalizationError, ValueError):
    """Raised when a fraction, lambda0, gamma or feature count is out of range."""
    pass


class EmptyFeatureSet(GainPenalizationError):
    """Raised when a model has to be refit on a feature set with no features."""
    pass


class InsufficientFeatures(GainPenalizationError):
    """Raised when the dataset or the final tally cannot fill the requested number of features."""

    def __init__(self, requested: int, available: int, reason: str = "have a nonzero occurrence count"):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Requested {requested} final features but only {available} {reason}"
        )
