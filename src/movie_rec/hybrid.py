"""
Hybrid combination of collaborative and content-based candidates.

Four strategies share one contract: results exclude everything the user has
watched or rated, there are at most `limit` of them, and they come back
sorted by score (highest first).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .collaborative import CollaborativeRecommender, USER_BASED
from .config import (
    ADAPTIVE_COLLABORATIVE_WEIGHT,
    ADAPTIVE_CONTENT_WEIGHT,
    ADAPTIVE_MIN_TOTAL_RATINGS,
    ADAPTIVE_MIN_USER_RATINGS,
    CANDIDATE_POOL_MULTIPLIER,
    COLD_START_RATINGS,
    CONFIDENCE,
    DEFAULT_COLLABORATIVE_WEIGHT,
    DEFAULT_CONTENT_WEIGHT,
    REASON_COMMUNITY,
    REASON_YOUR_TASTE,
)
from .content import ContentBasedRecommender
from .models import HybridRecommendation, Movie, ScoredMovie, SourceScores
from .ratings import RatingIndex

logger = logging.getLogger(__name__)


class Strategy(Enum):
    """How collaborative and content-based candidates are merged."""

    WEIGHTED = "weighted"  # Blend both scores
    SWITCHING = "switching"  # One source, picked by the user's rating count
    CASCADE = "cascade"  # Collaborative first, content-based fills the rest
    ADAPTIVE = "adaptive"  # Pick one of the above from data volume

    @classmethod
    def parse(cls, value: "str | Strategy") -> "Strategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown strategy '{value}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class HybridWeights:
    collaborative: float = DEFAULT_COLLABORATIVE_WEIGHT
    content_based: float = DEFAULT_CONTENT_WEIGHT

    def __post_init__(self) -> None:
        if self.collaborative < 0 or self.content_based < 0:
            raise ValueError(
                f"Hybrid weights must be non-negative, got "
                f"collaborative={self.collaborative}, content_based={self.content_based}"
            )


ADAPTIVE_WEIGHTS = HybridWeights(ADAPTIVE_COLLABORATIVE_WEIGHT, ADAPTIVE_CONTENT_WEIGHT)


def select_strategy(user_rating_count: int, total_rating_count: int) -> Strategy:
    """
    Choose a concrete strategy from data volume.

    Few ratings for the user -> SWITCHING (content-based takes over);
    few ratings system-wide -> CASCADE; otherwise WEIGHTED.
    """
    if user_rating_count < ADAPTIVE_MIN_USER_RATINGS:
        return Strategy.SWITCHING
    if total_rating_count < ADAPTIVE_MIN_TOTAL_RATINGS:
        return Strategy.CASCADE
    return Strategy.WEIGHTED


def rank_scores(candidates: list[ScoredMovie]) -> list[float]:
    """Position-based scores 1 - i/n, so collaborative sums share the [0, 1] scale of content scores."""
    n = len(candidates)
    return [1 - i / n for i in range(n)]


def _by_score(recs: list[HybridRecommendation], limit: int) -> list[HybridRecommendation]:
    return sorted(recs, key=lambda r: r.score, reverse=True)[:limit]


class HybridCombiner:
    """
    Merge collaborative and content-based candidate lists for one user.

    Every strategy asks each recommender for a pool larger than `limit` so
    overlap and de-duplication still leave enough candidates.
    """

    def __init__(
        self,
        collaborative: CollaborativeRecommender,
        content: ContentBasedRecommender,
        ratings: RatingIndex,
        collaborative_method: str = USER_BASED,
    ):
        self.collaborative = collaborative
        self.content = content
        self.ratings = ratings
        self.collaborative_method = collaborative_method

        self._handlers: dict[Strategy, Callable[..., list[HybridRecommendation]]] = {
            Strategy.WEIGHTED: self.weighted,
            Strategy.SWITCHING: self.switching,
            Strategy.CASCADE: self.cascade,
            Strategy.ADAPTIVE: self.adaptive,
        }

    def _exclusions(self, user_id: str, watched_movies: list[Movie]) -> set[str]:
        seen = {m.id for m in watched_movies}
        seen.update(self.ratings.user_ratings(user_id))
        return seen

    def _collaborative_candidates(self, user_id: str, limit: int, exclude: set[str]) -> list[ScoredMovie]:
        return self.collaborative.recommend(user_id, limit, method=self.collaborative_method, exclude=exclude)

    def combine(
        self,
        user_id: str,
        watched_movies: list[Movie],
        limit: int = 10,
        strategy: Strategy | str = Strategy.ADAPTIVE,
        weights: HybridWeights | None = None,
    ) -> list[HybridRecommendation]:
        """
        Run one strategy.

        Args:
            user_id: Target user
            watched_movies: The user's watch history
            limit: Maximum number of results
            strategy: Strategy to run (ADAPTIVE picks one from data volume)
            weights: Weights for WEIGHTED (ignored by the other strategies)
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        strategy = Strategy.parse(strategy)
        if strategy is Strategy.WEIGHTED:
            return self.weighted(user_id, watched_movies, limit, weights)
        return self._handlers[strategy](user_id, watched_movies, limit)

    def weighted(
        self,
        user_id: str,
        watched_movies: list[Movie],
        limit: int = 10,
        weights: HybridWeights | None = None,
    ) -> list[HybridRecommendation]:
        """Union both candidate pools by movie id and blend their scores."""
        weights = weights or HybridWeights()
        exclude = self._exclusions(user_id, watched_movies)
        pool = limit * CANDIDATE_POOL_MULTIPLIER

        collab = self._collaborative_candidates(user_id, pool, exclude)
        content = self.content.recommend(watched_movies, pool, exclude=exclude)

        movies: dict[str, Movie] = {}
        collab_scores: dict[str, float] = {}
        content_scores: dict[str, float] = {}
        reasons: dict[str, list[str]] = {}

        for candidate, score in zip(collab, rank_scores(collab)):
            movie_id = candidate.movie.id
            movies[movie_id] = candidate.movie
            collab_scores[movie_id] = score
            reasons[movie_id] = list(candidate.reasons)
        for candidate in content:
            movie_id = candidate.movie.id
            movies.setdefault(movie_id, candidate.movie)
            content_scores[movie_id] = candidate.score
            reasons.setdefault(movie_id, []).extend(candidate.reasons)

        results = []
        for movie_id, movie in movies.items():
            c_score = collab_scores.get(movie_id, 0.0)
            cb_score = content_scores.get(movie_id, 0.0)
            hybrid = c_score * weights.collaborative + cb_score * weights.content_based
            # Only candidates backed by a source with nonzero weight
            if hybrid <= 0:
                continue
            agreement = c_score > 0 and cb_score > 0
            results.append(HybridRecommendation(
                movie=movie,
                score=hybrid,
                sources=SourceScores(collaborative=c_score, content_based=cb_score, hybrid=hybrid),
                reasons=list(dict.fromkeys(reasons[movie_id])),  # dedupe preserving order
                confidence=CONFIDENCE['weighted_agreement'] if agreement else CONFIDENCE['weighted_single'],
            ))

        logger.debug(f"Weighted: {len(collab)} collaborative + {len(content)} content -> {len(results)} merged")
        return _by_score(results, limit)

    def switching(self, user_id: str, watched_movies: list[Movie], limit: int = 10) -> list[HybridRecommendation]:
        """Content-based only for users below the cold-start threshold, collaborative only otherwise."""
        exclude = self._exclusions(user_id, watched_movies)

        if self.ratings.user_rating_count(user_id) < COLD_START_RATINGS:
            content = self.content.recommend(watched_movies, limit, exclude=exclude)
            results = [
                HybridRecommendation(
                    movie=c.movie,
                    score=c.score,
                    sources=SourceScores(collaborative=0.0, content_based=c.score, hybrid=c.score),
                    reasons=[*c.reasons, REASON_YOUR_TASTE],
                    confidence=CONFIDENCE['switching_content'],
                )
                for c in content
            ]
            logger.debug(f"Switching: cold start for {user_id}, {len(results)} content-based results")
            return _by_score(results, limit)

        collab = self._collaborative_candidates(user_id, limit, exclude)
        results = [
            HybridRecommendation(
                movie=c.movie,
                score=score,
                sources=SourceScores(collaborative=score, content_based=0.0, hybrid=score),
                reasons=list(c.reasons),
                confidence=CONFIDENCE['switching_collaborative'],
            )
            for c, score in zip(collab, rank_scores(collab))
        ]
        logger.debug(f"Switching: {len(results)} collaborative results for {user_id}")
        return _by_score(results, limit)

    def cascade(self, user_id: str, watched_movies: list[Movie], limit: int = 10) -> list[HybridRecommendation]:
        """Up to half of `limit` from collaborative candidates, the rest from content-based ones."""
        exclude = self._exclusions(user_id, watched_movies)
        pool = limit * CANDIDATE_POOL_MULTIPLIER
        results: list[HybridRecommendation] = []
        used: set[str] = set()

        collab = self._collaborative_candidates(user_id, pool, exclude)
        for c, score in list(zip(collab, rank_scores(collab)))[:math.ceil(limit / 2)]:
            results.append(HybridRecommendation(
                movie=c.movie,
                score=score,
                sources=SourceScores(collaborative=score, content_based=0.0, hybrid=score),
                reasons=[*c.reasons, REASON_COMMUNITY],
                confidence=CONFIDENCE['cascade_collaborative'],
            ))
            used.add(c.movie.id)
        stage_one = len(results)

        if len(results) < limit:
            for c in self.content.recommend(watched_movies, pool, exclude=exclude):
                if len(results) >= limit:
                    break
                if c.movie.id in used:
                    continue
                results.append(HybridRecommendation(
                    movie=c.movie,
                    score=c.score,
                    sources=SourceScores(collaborative=0.0, content_based=c.score, hybrid=c.score),
                    reasons=list(c.reasons),
                    confidence=CONFIDENCE['cascade_content'],
                ))
                used.add(c.movie.id)

        logger.debug(f"Cascade: {stage_one} collaborative + {len(results) - stage_one} content-based for {user_id}")
        return _by_score(results, limit)

    def adaptive(self, user_id: str, watched_movies: list[Movie], limit: int = 10) -> list[HybridRecommendation]:
        """Dispatch to the strategy select_strategy picks for this user's data volume."""
        strategy = select_strategy(self.ratings.user_rating_count(user_id), len(self.ratings))
        logger.info(f"Adaptive strategy for {user_id}: {strategy.value}")
        if strategy is Strategy.WEIGHTED:
            return self.weighted(user_id, watched_movies, limit, ADAPTIVE_WEIGHTS)
        return self._handlers[strategy](user_id, watched_movies, limit)
