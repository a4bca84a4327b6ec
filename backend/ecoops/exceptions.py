"""
Error kinds raised by the game engine and the text-generation adapter.
"""


class EcoOpsError(Exception):
    """Base class for all EcoOps errors."""


class ConfigurationError(EcoOpsError):
    """Required configuration is missing at startup."""


class InvalidRequestError(EcoOpsError):
    """Malformed client input. The message is safe to show to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamError(EcoOpsError):
    """The text-generation service call failed.

    Only ``public_message`` is returned to the caller; the underlying cause is
    chained on ``__cause__`` and logged server-side.
    """

    def __init__(self, public_message: str):
        super().__init__(public_message)
        self.public_message = public_message


class CatalogInvariantViolation(EcoOpsError):
    """The static crop/stressor content cannot satisfy a generation request."""


class PersistenceError(EcoOpsError):
    """Saving or loading attempt history failed."""
