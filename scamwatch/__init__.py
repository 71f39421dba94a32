"""Search-query scam detection."""

__version__ = "0.1.0"
