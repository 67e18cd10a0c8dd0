"""Exception hierarchy for healwright."""


class HealwrightError(Exception):
    """Base exception for all healwright errors."""


class ConfigError(HealwrightError):
    """Raised when configuration is invalid."""


class StorageError(HealwrightError):
    """Raised when suggestion storage cannot be written."""


class LocatorParseError(HealwrightError):
    """Raised when a locator string cannot be decomposed."""
