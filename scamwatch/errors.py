"""Exception hierarchy for scam detection."""


class ScamwatchError(Exception):
    """Base class for all scamwatch errors."""


class EmbeddingUnavailableError(ScamwatchError):
    """The embedding provider could not be reached or timed out."""


class AnalyticsUnavailableError(ScamwatchError):
    """The query analytics source could not return data."""


class ConfigurationError(ScamwatchError):
    """A configuration file is missing or malformed."""
