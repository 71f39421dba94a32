"""Seed phrase and term configuration models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity of a known scam-indicative phrase."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @classmethod
    def parse(cls, value: str | None) -> "Severity":
        """Parse a severity string, falling back to medium for unknown values."""
        if isinstance(value, Severity):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


class TermSource(str, Enum):
    """Where a term came from."""

    JSON = "json"
    ADMIN = "admin"


class SeedPhrase(BaseModel):
    """A known scam-indicative phrase."""

    model_config = ConfigDict(frozen=True)

    text: str
    category: str
    severity: Severity = Severity.MEDIUM
    source: TermSource = TermSource.JSON


class LegitimateCategory(BaseModel):
    """A legitimate query intent and its exemplar queries."""

    model_config = ConfigDict(frozen=True)

    description: str = ""
    exemplars: tuple[str, ...] = ()


class TermConfig(BaseModel):
    """Immutable base configuration loaded at startup."""

    model_config = ConfigDict(frozen=True)

    seed_phrases: tuple[SeedPhrase, ...] = ()
    keywords: tuple[str, ...] = ()
    legitimate_categories: dict[str, LegitimateCategory] = Field(default_factory=dict)
    legitimate_patterns: tuple[str, ...] = ()
    context_words: tuple[str, ...] = ()
    default_category: str = "generalInquiry"


class TermEventType(str, Enum):
    """Mutation events emitted by a term store."""

    SEED_PHRASE_ADDED = "seed_phrase_added"
    SEED_PHRASE_REMOVED = "seed_phrase_removed"
    SEED_PHRASES_RELOADED = "seed_phrases_reloaded"
    EXEMPLAR_ADDED = "exemplar_added"


class TermEvent(BaseModel):
    """A single term store mutation."""

    type: TermEventType
    term: str = ""
    category: str = ""
    severity: Severity | None = None
