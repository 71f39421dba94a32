"""Embedding match results."""

from pydantic import BaseModel, Field

from scamwatch.terms.models import Severity


class EmbeddingMatch(BaseModel):
    """A seed phrase semantically close to a query."""

    phrase: str
    category: str
    severity: Severity
    similarity: float


class QueryEmbeddingResult(BaseModel):
    """Seed phrase matches for one query, best first."""

    query: str
    matches: list[EmbeddingMatch] = Field(default_factory=list)

    @property
    def top_match(self) -> EmbeddingMatch | None:
        """Get the closest seed phrase, if any."""
        return self.matches[0] if self.matches else None

    @property
    def is_scam_related(self) -> bool:
        """Check whether any seed phrase matched."""
        return bool(self.matches)
