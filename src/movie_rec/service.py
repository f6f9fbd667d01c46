"""
Recommendation entry point.

Runs the whole pipeline for one request: interactions -> ratings ->
collaborative and content-based candidates -> hybrid merge -> diversify.
Nothing is cached between calls.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from .collaborative import CollaborativeRecommender, USER_BASED
from .config import (
    CANDIDATE_POOL_MULTIPLIER,
    CONFIDENCE,
    DEFAULT_DIVERSITY_FACTOR,
    DEFAULT_LIMIT,
    DEFAULT_SIMILAR_USERS,
    POPULAR_MIN_WEIGHT,
    REASON_POPULAR,
)
from .content import ContentBasedRecommender
from .diversify import diversify as diversify_recommendations
from .hybrid import HybridCombiner, HybridWeights, Strategy
from .models import HybridRecommendation, Interaction, Movie, SourceScores
from .ratings import RatingIndex

logger = logging.getLogger(__name__)


def popular_movies(
    interactions: Iterable[Interaction],
    catalog: Iterable[Movie],
    limit: int = DEFAULT_LIMIT,
    exclude: Iterable[str] | None = None,
    min_weight: float = POPULAR_MIN_WEIGHT,
) -> list[HybridRecommendation]:
    """
    Rank catalog movies by the total weight of strong interactions.

    Scores are scaled so the most popular movie gets 1.0.
    """
    excluded = set(exclude or ())
    totals: dict[str, float] = defaultdict(float)
    for interaction in interactions:
        if interaction.weight >= min_weight and interaction.movie_id not in excluded:
            totals[interaction.movie_id] += interaction.weight

    movies = {m.id: m for m in catalog}
    ranked = sorted(
        ((movie_id, total) for movie_id, total in totals.items() if movie_id in movies),
        key=lambda x: x[1],
        reverse=True,
    )[:limit]
    if not ranked:
        return []

    top = ranked[0][1]
    results = []
    for movie_id, total in ranked:
        score = total / top if top > 0 else 0.0
        results.append(HybridRecommendation(
            movie=movies[movie_id],
            score=score,
            sources=SourceScores(collaborative=0.0, content_based=0.0, hybrid=score),
            reasons=[REASON_POPULAR],
            confidence=CONFIDENCE["popular"],
        ))
    return results


class RecommendationService:
    """Stateless orchestration of the recommendation pipeline."""

    def __init__(self, collaborative_method: str = USER_BASED, k_neighbors: int = DEFAULT_SIMILAR_USERS):
        self.collaborative_method = collaborative_method
        self.k_neighbors = k_neighbors

    def recommend(
        self,
        user_id: str,
        interactions: list[Interaction],
        catalog: list[Movie],
        watched_movies: list[Movie] | None = None,
        limit: int = DEFAULT_LIMIT,
        diversify: bool = True,
        diversity_factor: float = DEFAULT_DIVERSITY_FACTOR,
        strategy: Strategy | str = Strategy.ADAPTIVE,
        weights: HybridWeights | None = None,
    ) -> list[HybridRecommendation]:
        """
        Produce the final ranked recommendations for one user.

        Args:
            user_id: Target user
            interactions: Interaction log (all users, read-only)
            catalog: Candidate movie pool
            watched_movies: The user's watch history; defaults to the catalog
                movies the user has interacted with
            limit: Maximum number of results
            diversify: Re-rank for genre variety before truncating
            diversity_factor: Relevance/variety trade-off in [0, 1]
            strategy: Hybrid strategy override (ADAPTIVE by default)
            weights: Weights for the WEIGHTED strategy

        Returns:
            At most `limit` recommendations in final rank order
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if not 0.0 <= diversity_factor <= 1.0:
            raise ValueError(f"diversity_factor must be within [0, 1], got {diversity_factor}")
        strategy = Strategy.parse(strategy)

        ratings = RatingIndex.from_interactions(interactions)
        user_ratings = ratings.user_ratings(user_id)
        if watched_movies is None:
            watched_movies = [m for m in catalog if m.id in user_ratings]

        if not catalog:
            logger.info(f"Empty catalog, no recommendations for {user_id}")
            return []

        if not watched_movies and not user_ratings:
            logger.warning(f"No history for {user_id}, falling back to popular movies")
            return popular_movies(interactions, catalog, limit)

        combiner = HybridCombiner(
            CollaborativeRecommender(ratings, catalog, k_neighbors=self.k_neighbors),
            ContentBasedRecommender(catalog),
            ratings,
            collaborative_method=self.collaborative_method,
        )
        # Over-fetch so diversification has something to choose from
        recommendations = combiner.combine(
            user_id,
            watched_movies,
            limit=limit * CANDIDATE_POOL_MULTIPLIER,
            strategy=strategy,
            weights=weights,
        )

        if diversify:
            recommendations = diversify_recommendations(recommendations, diversity_factor)

        results = recommendations[:limit]
        logger.info(
            f"Recommended {len(results)} movies for {user_id} "
            f"(strategy={strategy.value}, {len(ratings)} ratings, diversify={diversify})"
        )
        return results
