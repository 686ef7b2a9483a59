"""
Exceptions raised by the UEF session client.
Only configuration problems raise; protocol failures are logged and the feature stays inactive.
"""


class UefError(Exception):
    """Base class for UEF client errors."""


class ConfigurationError(UefError):
    """Required configuration (e.g. the trusted host origin) is missing or invalid."""
