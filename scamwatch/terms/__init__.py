"""Seed phrases, legitimate exemplars and their storage."""

from .models import (
    LegitimateCategory,
    SeedPhrase,
    Severity,
    TermConfig,
    TermEvent,
    TermEventType,
    TermSource,
)
from .store import JsonTermStore, TermStore, build_term_config, normalize_term

__all__ = [
    "JsonTermStore",
    "LegitimateCategory",
    "SeedPhrase",
    "Severity",
    "TermConfig",
    "TermEvent",
    "TermEventType",
    "TermSource",
    "TermStore",
    "build_term_config",
    "normalize_term",
]
