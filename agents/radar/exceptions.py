"""
Radar error taxonomy.

Transient and validation errors are contained to one subscription and retried
on the next sweep. Fatal errors abort the sweep and reach the trigger caller.
"""


class RadarError(Exception):
    """Base class for radar failures."""


class ProviderError(RadarError):
    """Chain data provider failed (timeout, rate limit, bad status)."""


class TransactionValidationError(RadarError):
    """Provider returned a transaction record that cannot be parsed."""


class SubscriptionValidationError(RadarError):
    """Stored subscription is malformed (e.g. invalid target address)."""


class FatalSweepError(RadarError):
    """Aborts the whole sweep."""


class ConfigurationError(FatalSweepError):
    """Required credentials are missing."""


class StoreUnavailableError(FatalSweepError):
    """The subscription store cannot be reached at all."""
