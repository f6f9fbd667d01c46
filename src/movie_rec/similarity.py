"""
User-user and item-item similarity over implicit ratings.

Degenerate inputs (no overlap, zero variance, zero magnitude) score 0.0
rather than raising.
"""
import logging

import numpy as np

from .ratings import RatingIndex

logger = logging.getLogger(__name__)


def _paired(ratings_a: dict[str, float], ratings_b: dict[str, float]) -> tuple[np.ndarray, np.ndarray]:
    """Align two keyed rating maps on their common keys (sorted, so argument order doesn't matter)."""
    common = sorted(ratings_a.keys() & ratings_b.keys())
    a = np.fromiter((ratings_a[k] for k in common), dtype=float, count=len(common))
    b = np.fromiter((ratings_b[k] for k in common), dtype=float, count=len(common))
    return a, b


def pearson_similarity(ratings_a: dict[str, float], ratings_b: dict[str, float]) -> float:
    """
    Pearson correlation over the movies both users rated.

    Args:
        ratings_a: movie_id -> rating for the first user
        ratings_b: movie_id -> rating for the second user

    Returns:
        Correlation in [-1, 1]; 0.0 with no common movies or zero variance
    """
    a, b = _paired(ratings_a, ratings_b)
    n = len(a)
    if n == 0:
        return 0.0

    numerator = float(a @ b - a.sum() * b.sum() / n)
    var_a = float(a @ a - a.sum() ** 2 / n)
    var_b = float(b @ b - b.sum() ** 2 / n)
    denominator_sq = var_a * var_b
    # Rounding can leave a tiny negative/positive residue for constant vectors
    if denominator_sq <= 1e-12:
        return 0.0

    return float(np.clip(numerator / np.sqrt(denominator_sq), -1.0, 1.0))


def cosine_similarity(ratings_a: dict[str, float], ratings_b: dict[str, float]) -> float:
    """
    Cosine similarity over the users who rated both movies.

    Args:
        ratings_a: user_id -> rating for the first movie
        ratings_b: user_id -> rating for the second movie

    Returns:
        Similarity (in [0, 1] for non-negative ratings); 0.0 with no common
        users or zero magnitude
    """
    a, b = _paired(ratings_a, ratings_b)
    if len(a) == 0:
        return 0.0

    magnitude = float(np.linalg.norm(a) * np.linalg.norm(b))
    if magnitude == 0:
        return 0.0

    return float(a @ b / magnitude)


def user_similarity(index: RatingIndex, user_a: str, user_b: str) -> float:
    return pearson_similarity(index.user_ratings(user_a), index.user_ratings(user_b))


def movie_similarity(index: RatingIndex, movie_a: str, movie_b: str) -> float:
    return cosine_similarity(index.movie_ratings(movie_a), index.movie_ratings(movie_b))


def find_similar_users(index: RatingIndex, user_id: str, k: int = 10) -> list[tuple[str, float]]:
    """
    Rank every other rated user by Pearson similarity to user_id.

    Returns:
        Top-k (user_id, similarity) pairs, highest first. Equal scores keep
        the order users first appeared in the rating index.
    """
    target = index.user_ratings(user_id)
    scored = [
        (other, pearson_similarity(target, index.user_ratings(other)))
        for other in index.users()
        if other != user_id and index.user_ratings(other)
    ]
    # sorted() is stable, so ties keep insertion order
    neighbors = sorted(scored, key=lambda x: x[1], reverse=True)[:k]
    logger.debug(f"Found {len(neighbors)} neighbors for user {user_id} (of {len(scored)} candidates)")
    return neighbors
