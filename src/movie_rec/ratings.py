"""
Implicit ratings derived from raw interactions.

Each (user, movie) pair collapses to a single rating: the mean interaction
weight, capped at MAX_RATING.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable

from .config import MAX_RATING, HISTORY_BASE_WEIGHT, HISTORY_RECENCY_STEP
from .models import Interaction, InteractionType, Movie, Rating

logger = logging.getLogger(__name__)


def derive_ratings(interactions: Iterable[Interaction]) -> list[Rating]:
    """
    Convert raw interactions into implicit ratings.

    Groups by (user_id, movie_id); rating = min(MAX_RATING, sum(weight) / count).
    The rating keeps the latest timestamp seen in its group.
    """
    groups: dict[tuple[str, str], list[Interaction]] = defaultdict(list)
    for interaction in interactions:
        groups[(interaction.user_id, interaction.movie_id)].append(interaction)

    ratings = []
    for (user_id, movie_id), group in groups.items():
        total_weight = sum(i.weight for i in group)
        timestamps = [i.timestamp for i in group if i.timestamp is not None]
        ratings.append(Rating(
            user_id=user_id,
            movie_id=movie_id,
            rating=min(MAX_RATING, total_weight / len(group)),
            timestamp=max(timestamps) if timestamps else None,
        ))

    logger.debug(f"Derived {len(ratings)} ratings from {sum(len(g) for g in groups.values())} interactions")
    return ratings


def interactions_from_history(
    user_id: str,
    watched_movies: list[Movie],
    now: datetime | None = None,
) -> list[Interaction]:
    """
    Synthesize view interactions from a watch history (most recent first).

    Earlier entries get a slightly higher weight and a later timestamp, one
    day apart, so recency survives rating derivation.
    """
    if now is None:
        now = datetime.now()
    n = len(watched_movies)
    return [
        Interaction(
            user_id=user_id,
            movie_id=movie.id,
            interaction_type=InteractionType.VIEW,
            weight=HISTORY_BASE_WEIGHT + (n - index) * HISTORY_RECENCY_STEP,
            timestamp=now - timedelta(days=index),
        )
        for index, movie in enumerate(watched_movies)
    ]


class RatingIndex:
    """
    Ratings keyed by user and by movie.

    Lookups return plain dicts (movie_id -> rating, user_id -> rating).
    Callers must not rely on their iteration order.
    """

    def __init__(self, ratings: Iterable[Rating]):
        self._by_user: dict[str, dict[str, float]] = defaultdict(dict)
        self._by_movie: dict[str, dict[str, float]] = defaultdict(dict)
        self._count = 0
        for r in ratings:
            if r.movie_id not in self._by_user[r.user_id]:
                self._count += 1
            self._by_user[r.user_id][r.movie_id] = r.rating
            self._by_movie[r.movie_id][r.user_id] = r.rating

    @classmethod
    def from_interactions(cls, interactions: Iterable[Interaction]) -> "RatingIndex":
        return cls(derive_ratings(interactions))

    def __len__(self) -> int:
        return self._count

    def users(self) -> list[str]:
        return list(self._by_user)

    def movies(self) -> list[str]:
        return list(self._by_movie)

    def user_ratings(self, user_id: str) -> dict[str, float]:
        return self._by_user.get(user_id, {})

    def movie_ratings(self, movie_id: str) -> dict[str, float]:
        return self._by_movie.get(movie_id, {})

    def user_rating_count(self, user_id: str) -> int:
        return len(self.user_ratings(user_id))
