"""Term storage: immutable base configuration plus a mutable admin overlay."""

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from scamwatch.errors import ConfigurationError
from .models import (
    LegitimateCategory,
    SeedPhrase,
    Severity,
    TermConfig,
    TermEvent,
    TermEventType,
    TermSource,
)

logger = logging.getLogger(__name__)

TermListener = Callable[[TermEvent], Awaitable[None]]


def normalize_term(text: str | None) -> str:
    """Lowercase, trim and collapse whitespace."""
    return " ".join((text or "").lower().split())


class TermStore(ABC):
    """Source of seed phrases, legitimate exemplars and exclusion lists."""

    def __init__(self) -> None:
        self._listeners: list[TermListener] = []

    @abstractmethod
    def get_seed_phrases(self) -> list[SeedPhrase]:
        """Get all active seed phrases."""
        pass

    @abstractmethod
    def get_legitimate_categories(self) -> dict[str, LegitimateCategory]:
        """Get legitimate categories with their merged exemplars."""
        pass

    @abstractmethod
    def get_keywords(self) -> list[str]:
        """Get verbatim scam keywords that are not used for embedding."""
        pass

    @abstractmethod
    def get_legitimate_patterns(self) -> list[re.Pattern[str]]:
        """Get compiled lexical patterns for known-legitimate queries."""
        pass

    @abstractmethod
    def get_context_words(self) -> frozenset[str]:
        """Get generic domain-context words (agency name, 'tax', ...)."""
        pass

    @abstractmethod
    async def add_seed_phrase(self, text: str, category: str, severity: str | Severity) -> bool:
        """Add a seed phrase. Returns False if it already exists."""
        pass

    @abstractmethod
    async def remove_seed_phrase(self, text: str) -> bool:
        """Remove a seed phrase. Returns False if it was not found."""
        pass

    @abstractmethod
    async def add_exemplar(self, term: str, category: str | None = None) -> str | None:
        """Add a legitimate exemplar.

        Returns:
            The category the exemplar was stored under, or None if it already existed
        """
        pass

    def get_legitimate_exemplars(self) -> dict[str, list[str]]:
        """Get exemplars per legitimate category."""
        return {
            name: list(category.exemplars)
            for name, category in self.get_legitimate_categories().items()
        }

    def get_known_scam_terms(self) -> list[str]:
        """Get every known scam term (seed phrases and keywords), deduplicated."""
        seen: dict[str, None] = {}
        for phrase in self.get_seed_phrases():
            seen.setdefault(phrase.text, None)
        for keyword in self.get_keywords():
            seen.setdefault(normalize_term(keyword), None)
        return list(seen)

    def get_known_scam_term_set(self) -> frozenset[str]:
        """Get known scam terms as a lookup set."""
        return frozenset(self.get_known_scam_terms())

    def get_legitimate_exemplar_set(self) -> frozenset[str]:
        """Get every exemplar across categories as a lookup set."""
        return frozenset(
            exemplar
            for category in self.get_legitimate_categories().values()
            for exemplar in category.exemplars
        )

    def is_known_scam_term(self, query: str) -> bool:
        """Check if a query exactly matches a known scam term."""
        return normalize_term(query) in self.get_known_scam_term_set()

    def is_legitimate_exemplar(self, query: str) -> bool:
        """Check if a query exactly matches a legitimate exemplar."""
        return normalize_term(query) in self.get_legitimate_exemplar_set()

    def matches_legitimate_pattern(self, query: str) -> bool:
        """Check if a query matches a curated legitimate lexical pattern."""
        normalized = normalize_term(query)
        return any(pattern.search(normalized) for pattern in self.get_legitimate_patterns())

    def add_listener(self, listener: TermListener) -> None:
        """Subscribe to mutation events."""
        self._listeners.append(listener)

    async def _emit(self, event: TermEvent) -> None:
        """Deliver an event to every listener; one failing listener does not stop the rest."""
        for listener in self._listeners:
            try:
                await listener(event)
            except Exception as e:
                logger.warning(f"Term listener failed for {event.type.value} '{event.term}': {e}")


class JsonTermStore(TermStore):
    """Term store backed by packaged JSON files and an in-memory admin overlay.

    The base ``TermConfig`` is never mutated. Admin additions and removals live
    in separate overlay structures and are merged on every read.
    """

    def __init__(self, config: TermConfig) -> None:
        super().__init__()
        self.config = config
        self._compiled_patterns = [re.compile(p, re.IGNORECASE) for p in config.legitimate_patterns]
        self._context_words = frozenset(normalize_term(w) for w in config.context_words)

        self._added_phrases: dict[str, SeedPhrase] = {}
        self._removed_phrases: set[str] = set()
        self._added_exemplars: dict[str, list[str]] = {}

    @classmethod
    def from_files(cls, seed_phrases_path: Path, legitimate_queries_path: Path) -> "JsonTermStore":
        """Load the base configuration from the two JSON files.

        Raises:
            ConfigurationError: If a file is missing or malformed
        """
        seed_data = _read_json(seed_phrases_path)
        legit_data = _read_json(legitimate_queries_path)
        return cls(build_term_config(seed_data, legit_data))

    def get_seed_phrases(self) -> list[SeedPhrase]:
        phrases: dict[str, SeedPhrase] = {}
        for phrase in self.config.seed_phrases:
            if phrase.text not in self._removed_phrases:
                phrases.setdefault(phrase.text, phrase)
        for text, phrase in self._added_phrases.items():
            phrases.setdefault(text, phrase)
        return list(phrases.values())

    def get_legitimate_categories(self) -> dict[str, LegitimateCategory]:
        merged: dict[str, LegitimateCategory] = {}
        for name, category in self.config.legitimate_categories.items():
            extra = [e for e in self._added_exemplars.get(name, []) if e not in category.exemplars]
            merged[name] = LegitimateCategory(
                description=category.description,
                exemplars=category.exemplars + tuple(extra),
            )
        return merged

    def get_keywords(self) -> list[str]:
        return list(self.config.keywords)

    def get_legitimate_patterns(self) -> list[re.Pattern[str]]:
        return self._compiled_patterns

    def get_context_words(self) -> frozenset[str]:
        return self._context_words

    async def add_seed_phrase(self, text: str, category: str, severity: str | Severity) -> bool:
        normalized = normalize_term(text)
        if not normalized:
            logger.warning("Ignoring empty seed phrase")
            return False

        if any(p.text == normalized for p in self.get_seed_phrases()):
            logger.warning(f"Seed phrase '{normalized}' already exists")
            return False

        parsed = Severity.parse(severity)
        if normalized in self._removed_phrases:
            # Re-adding a removed base phrase restores it
            self._removed_phrases.discard(normalized)
        else:
            self._added_phrases[normalized] = SeedPhrase(
                text=normalized, category=category, severity=parsed, source=TermSource.ADMIN
            )

        logger.info(f"Added seed phrase '{normalized}' to {category} ({parsed.value})")
        await self._emit(
            TermEvent(
                type=TermEventType.SEED_PHRASE_ADDED,
                term=normalized,
                category=category,
                severity=parsed,
            )
        )
        return True

    async def remove_seed_phrase(self, text: str) -> bool:
        normalized = normalize_term(text)
        if normalized in self._added_phrases:
            del self._added_phrases[normalized]
        elif any(p.text == normalized for p in self.config.seed_phrases) and normalized not in self._removed_phrases:
            # Base phrases are soft-deleted in the overlay
            self._removed_phrases.add(normalized)
        else:
            logger.warning(f"Seed phrase '{normalized}' not found")
            return False

        logger.info(f"Removed seed phrase '{normalized}'")
        await self._emit(TermEvent(type=TermEventType.SEED_PHRASE_REMOVED, term=normalized))
        return True

    async def add_exemplar(self, term: str, category: str | None = None) -> str | None:
        normalized = normalize_term(term)
        if not normalized:
            logger.warning("Ignoring empty exemplar")
            return None

        target = category or self.config.default_category
        if target not in self.config.legitimate_categories:
            logger.warning(f"Unknown category '{target}', adding to {self.config.default_category}")
            target = self.config.default_category

        if normalized in self.get_legitimate_categories().get(target, LegitimateCategory()).exemplars:
            return None

        self._added_exemplars.setdefault(target, []).append(normalized)
        logger.info(f"Added exemplar '{normalized}' to category '{target}'")
        await self._emit(TermEvent(type=TermEventType.EXEMPLAR_ADDED, term=normalized, category=target))
        return target


def build_term_config(seed_data: dict[str, Any], legit_data: dict[str, Any]) -> TermConfig:
    """Build a TermConfig from the parsed JSON documents."""
    phrases: list[SeedPhrase] = []
    seen: set[str] = set()
    for category, data in (seed_data.get("phrases") or {}).items():
        severity = Severity.parse(data.get("severity"))
        for term in data.get("terms", []):
            text = normalize_term(term)
            if text and text not in seen:
                seen.add(text)
                phrases.append(SeedPhrase(text=text, category=category, severity=severity))

    categories = {
        name: LegitimateCategory(
            description=data.get("description", ""),
            exemplars=tuple(dict.fromkeys(normalize_term(e) for e in data.get("exemplars", []) if e)),
        )
        for name, data in (legit_data.get("categories") or {}).items()
    }

    default_category = legit_data.get("defaultCategory", "generalInquiry")
    if default_category not in categories:
        categories[default_category] = LegitimateCategory(description="Miscellaneous legitimate queries")

    return TermConfig(
        seed_phrases=tuple(phrases),
        keywords=tuple(normalize_term(k) for k in seed_data.get("keywords", []) if k),
        legitimate_categories=categories,
        legitimate_patterns=tuple(legit_data.get("lexicalPatterns", [])),
        context_words=tuple(legit_data.get("contextWords", [])),
        default_category=default_category,
    )


def _read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed configuration file {path}: {e}") from e
