"""
Error taxonomy for the image studio.

Every top-level action (generate, regenerate, export) catches these at its
boundary and turns them into a single human-readable message.
"""


class StudioError(Exception):
    """Base class for all studio errors."""


class ConfigurationError(StudioError):
    """Required configuration (the API key) is missing. Fatal at startup."""


class ValidationError(StudioError):
    """The recipe form is incomplete. Raised before any network call."""

    def __init__(self, missing_fields):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required field(s): {', '.join(self.missing_fields)}")


class GenerationError(StudioError):
    """The provider failed or returned data we cannot use."""


class ExportError(StudioError):
    """The zip archive could not be assembled."""
