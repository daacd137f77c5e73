"""
Exception hierarchy for the droplets cleaner.
"""


class CleanerError(Exception):
    """Base class for every error raised by the cleaner."""


class ConfigurationError(CleanerError):
    """Invalid or missing configuration; fatal before any pass runs."""


class ListingError(CleanerError):
    """A listing step failed; aborts the current pass only."""


class MachineConfigError(ListingError):
    """A machine directory could not be read or its config.json is unusable."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class DropletsClientError(ListingError):
    """The DigitalOcean API call failed."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code
