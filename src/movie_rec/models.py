"""
Data contracts shared by the recommendation pipeline.

Interactions and movies come from the caller; ratings, features and
recommendations are derived per request and never persisted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class InteractionType(Enum):
    """Kind of behavioural signal recorded by the tracking endpoint."""

    VIEW = "view"
    RATING = "rating"
    FAVORITE = "favorite"
    WATCH_COMPLETE = "watch_complete"

    @classmethod
    def parse(cls, value: "str | InteractionType") -> "InteractionType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown interaction type '{value}' (expected one of: {valid})") from None


def _field(payload: dict[str, Any], snake: str, camel: str, default: Any = KeyError) -> Any:
    if snake in payload:
        return payload[snake]
    if camel in payload or default is KeyError:
        return payload[camel]
    return default


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class Interaction:
    user_id: str
    movie_id: str
    interaction_type: InteractionType
    weight: float
    timestamp: datetime | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Interaction":
        """Build from a tracking record (camelCase or snake_case keys)."""
        return cls(
            user_id=str(_field(payload, "user_id", "userId")),
            movie_id=str(_field(payload, "movie_id", "movieId")),
            interaction_type=InteractionType.parse(
                _field(payload, "interaction_type", "interactionType", "view")
            ),
            weight=float(payload.get("weight", 0.0)),
            timestamp=_parse_timestamp(payload.get("timestamp")),
        )


@dataclass(frozen=True)
class Rating:
    """Implicit rating derived from a (user, movie) group of interactions."""
    user_id: str
    movie_id: str
    rating: float
    timestamp: datetime | None = None


def _slugs(values: Any) -> tuple[str, ...]:
    """Normalize catalog taxonomy fields ([{'slug': ...}] or plain strings), dropping duplicates."""
    result: list[str] = []
    for value in values or []:
        slug = value.get("slug") if isinstance(value, dict) else value
        if slug and slug not in result:
            result.append(str(slug))
    return tuple(result)


@dataclass(frozen=True)
class Movie:
    """Catalog entry with the fields the feature extractor depends on."""
    id: str
    name: str = ""
    origin_name: str = ""
    slug: str = ""
    year: int = 0
    genres: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    directors: tuple[str, ...] = ()
    actors: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Movie":
        """
        Build from a catalog record.

        Accepts the catalog API shape (``_id``, ``category``, ``country``,
        ``director``, ``actor``) as well as the flat field names used here.
        """
        movie_id = payload["_id"] if "_id" in payload else payload["id"]
        return cls(
            id=str(movie_id),
            name=payload.get("name") or "",
            origin_name=payload.get("origin_name") or "",
            slug=payload.get("slug") or "",
            year=int(payload.get("year") or 0),
            genres=_slugs(payload.get("category", payload.get("genres"))),
            countries=_slugs(payload.get("country", payload.get("countries"))),
            directors=_slugs(payload.get("director", payload.get("directors"))),
            actors=_slugs(payload.get("actor", payload.get("actors"))),
        )


@dataclass(frozen=True)
class MovieFeatures:
    movie_id: str
    genres: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    directors: tuple[str, ...] = ()
    actors: tuple[str, ...] = ()
    year: int = 0
    # Title tokens; carried along but not used by any similarity function
    keywords: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.genres or self.countries or self.directors or self.actors or self.year)


@dataclass
class ScoredMovie:
    """Candidate produced by a single recommender."""
    movie: Movie
    score: float
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SourceScores:
    collaborative: float = 0.0
    content_based: float = 0.0
    hybrid: float = 0.0


@dataclass
class HybridRecommendation:
    movie: Movie
    score: float
    sources: SourceScores
    reasons: list[str] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "movie_id": self.movie.id,
            "name": self.movie.name,
            "slug": self.movie.slug,
            "year": self.movie.year,
            "score": round(self.score, 4),
            "sources": {
                "collaborative": round(self.sources.collaborative, 4),
                "content_based": round(self.sources.content_based, 4),
                "hybrid": round(self.sources.hybrid, 4),
            },
            "reasons": list(self.reasons),
            "confidence": self.confidence,
        }
