"""
Content-based recommendations.

Scores catalog movies against a user profile with a fixed-weight blend of
per-field overlaps and release-year proximity.
"""
import logging
from typing import Iterable

from .config import CONTENT_WEIGHTS, YEAR_PROXIMITY_SPAN
from .features import build_user_profile, extract_features
from .models import Movie, MovieFeatures, ScoredMovie

logger = logging.getLogger(__name__)


def overlap_score(a: Iterable[str], b: Iterable[str]) -> float:
    """Dice overlap 2|A∩B| / (|A|+|B|); 0.0 if either side is empty."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return 2 * len(set_a & set_b) / (len(set_a) + len(set_b))


def year_proximity(year_a: int, year_b: int, span: int = YEAR_PROXIMITY_SPAN) -> float:
    return max(0.0, 1 - abs(year_a - year_b) / span)


def feature_similarity(
    a: MovieFeatures,
    b: MovieFeatures,
    weights: dict[str, float] = CONTENT_WEIGHTS,
) -> float:
    """
    Weighted multi-feature similarity between two feature vectors.

    With the default weights the result lies in [0, 1].
    """
    return (
        weights['genre'] * overlap_score(a.genres, b.genres)
        + weights['country'] * overlap_score(a.countries, b.countries)
        + weights['director'] * overlap_score(a.directors, b.directors)
        + weights['actor'] * overlap_score(a.actors, b.actors)
        + weights['year'] * year_proximity(a.year, b.year)
    )


def _shared(candidate: tuple[str, ...], profile: tuple[str, ...]) -> list[str]:
    return [value for value in candidate if value in profile]


def explain_match(profile: MovieFeatures, features: MovieFeatures) -> list[str]:
    """Human-readable reasons naming the genres, countries and directors a movie shares with the profile."""
    reasons = []
    genres = _shared(features.genres, profile.genres)
    if genres:
        reasons.append(f"Genres: {', '.join(genres)}")
    countries = _shared(features.countries, profile.countries)
    if countries:
        reasons.append(f"Countries: {', '.join(countries)}")
    directors = _shared(features.directors, profile.directors)
    if directors:
        reasons.append(f"Director: {', '.join(directors)}")
    return reasons


class ContentBasedRecommender:
    """Score catalog movies by attribute match to a profile built from watch history."""

    def __init__(self, catalog: Iterable[Movie], weights: dict[str, float] | None = None):
        self.catalog = list(catalog)
        self.weights = weights or CONTENT_WEIGHTS
        # Features are a pure function of the movie; compute once per request
        self._features = {m.id: extract_features(m) for m in self.catalog}

    def features(self, movie: Movie) -> MovieFeatures:
        return self._features.get(movie.id) or extract_features(movie)

    def recommend(
        self,
        watched_movies: list[Movie],
        limit: int = 10,
        exclude: Iterable[str] | None = None,
    ) -> list[ScoredMovie]:
        """
        Rank unwatched catalog movies against the user's profile.

        Args:
            watched_movies: The user's watch history (defines the profile)
            limit: Maximum number of results
            exclude: Extra movie ids to leave out (e.g. rated but not in history)

        Returns:
            Up to `limit` candidates, highest score first
        """
        seen = {m.id for m in watched_movies}
        if exclude:
            seen.update(exclude)
        profile = build_user_profile(watched_movies)

        scored = []
        for movie in self.catalog:
            if movie.id in seen:
                continue
            features = self.features(movie)
            scored.append(ScoredMovie(
                movie=movie,
                score=feature_similarity(profile, features, self.weights),
                reasons=explain_match(profile, features),
            ))

        results = sorted(scored, key=lambda r: r.score, reverse=True)[:limit]
        logger.debug(f"Content-based: scored {len(scored)} candidates, returning {len(results)}")
        return results

    def similar_to(self, movie: Movie, limit: int = 10) -> list[ScoredMovie]:
        """Catalog movies most similar to a single movie (the movie itself excluded)."""
        anchor = self.features(movie)
        scored = [
            ScoredMovie(
                movie=candidate,
                score=feature_similarity(anchor, self.features(candidate), self.weights),
                reasons=explain_match(anchor, self.features(candidate)),
            )
            for candidate in self.catalog
            if candidate.id != movie.id
        ]
        return sorted(scored, key=lambda r: r.score, reverse=True)[:limit]
