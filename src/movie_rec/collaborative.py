"""
Collaborative filtering over implicit ratings.

User-based: neighbours found by Pearson similarity vote for the movies they
rated. Item-based: every unwatched catalog movie is scored by its cosine
similarity to the movies the target user rated.
"""
import logging
from collections import defaultdict
from typing import Iterable

import numpy as np
from scipy.sparse import csr_matrix

from .config import DEFAULT_SIMILAR_USERS, REASON_SIMILAR_USERS, REASON_SIMILAR_MOVIES
from .models import Movie, ScoredMovie
from .ratings import RatingIndex
from .similarity import find_similar_users

logger = logging.getLogger(__name__)

USER_BASED = "user"
ITEM_BASED = "item"
METHODS = (USER_BASED, ITEM_BASED)


class CollaborativeRecommender:
    """
    Collaborative filtering recommender.

    Uses a sparse user x movie matrix so item-item similarities for all
    candidates are computed in a handful of matrix products.
    """

    def __init__(self, ratings: RatingIndex, catalog: Iterable[Movie], k_neighbors: int = DEFAULT_SIMILAR_USERS):
        """
        Args:
            ratings: Implicit ratings for every user in the interaction window
            catalog: Candidate movie pool
            k_neighbors: Number of similar users consulted by the user-based path
        """
        self.ratings = ratings
        self.movies: dict[str, Movie] = {m.id: m for m in catalog}
        self.k_neighbors = k_neighbors

        self._matrix: csr_matrix | None = None
        self._presence: csr_matrix | None = None
        self._user_index: dict[str, int] = {}
        self._movie_index: dict[str, int] = {}

    def _seen(self, user_id: str, exclude: Iterable[str] | None) -> set[str]:
        seen = set(self.ratings.user_ratings(user_id))
        if exclude:
            seen.update(exclude)
        return seen

    def _rank(self, scores: dict[str, float], limit: int, reason: str) -> list[ScoredMovie]:
        """
        Catalog movies highest score first.

        Zero-score candidates are kept and sort after the positive ones; net
        negative evidence (votes from dissimilar users) is dropped.
        """
        ranked = sorted(
            ((movie_id, score) for movie_id, score in scores.items() if movie_id in self.movies and score >= 0),
            key=lambda x: x[1],
            reverse=True,
        )
        return [ScoredMovie(self.movies[movie_id], score, [reason]) for movie_id, score in ranked[:limit]]

    def recommend_user_based(
        self,
        user_id: str,
        limit: int = 10,
        exclude: Iterable[str] | None = None,
    ) -> list[ScoredMovie]:
        """
        Score movies rated by similar users.

        Each neighbour adds similarity x rating to every movie they rated that
        the target user has not seen. Flat rating histories give Pearson 0, so
        such neighbours still put their movies forward at score 0.
        """
        if not self.ratings.user_ratings(user_id):
            return []

        seen = self._seen(user_id, exclude)
        neighbors = find_similar_users(self.ratings, user_id, k=self.k_neighbors)

        scores: dict[str, float] = defaultdict(float)
        for neighbor, similarity in neighbors:
            for movie_id, rating in self.ratings.user_ratings(neighbor).items():
                if movie_id not in seen:
                    scores[movie_id] += similarity * rating

        results = self._rank(scores, limit, REASON_SIMILAR_USERS)
        logger.debug(f"User-based: {len(neighbors)} neighbors -> {len(results)} candidates for {user_id}")
        return results

    def _build_sparse_matrix(self):
        """Build user x movie rating and presence matrices (catalog and rated movies)."""
        users = self.ratings.users()
        movie_ids = list(dict.fromkeys([*self.movies, *self.ratings.movies()]))
        self._user_index = {u: i for i, u in enumerate(users)}
        self._movie_index = {m: i for i, m in enumerate(movie_ids)}

        rows, cols, values = [], [], []
        for user in users:
            for movie_id, rating in self.ratings.user_ratings(user).items():
                rows.append(self._user_index[user])
                cols.append(self._movie_index[movie_id])
                values.append(rating)

        shape = (len(users), len(movie_ids))
        self._matrix = csr_matrix((values, (rows, cols)), shape=shape, dtype=float)
        self._presence = csr_matrix((np.ones(len(values)), (rows, cols)), shape=shape, dtype=float)
        logger.debug(f"Built rating matrix {shape} with {len(values)} entries")

    def item_similarities(self, anchor_ids: list[str], candidate_ids: list[str]) -> np.ndarray:
        """
        Cosine similarity between anchor and candidate movies over co-rating users.

        Returns:
            Dense (len(anchor_ids) x len(candidate_ids)) array
        """
        if self._matrix is None:
            self._build_sparse_matrix()
        if not anchor_ids or not candidate_ids:
            return np.zeros((len(anchor_ids), len(candidate_ids)))

        anchors = [self._movie_index[m] for m in anchor_ids]
        candidates = [self._movie_index[m] for m in candidate_ids]
        ratings = self._matrix.tocsc()
        presence = self._presence.tocsc()
        r_a, r_c = ratings[:, anchors], ratings[:, candidates]
        p_a, p_c = presence[:, anchors], presence[:, candidates]

        # Products of non-co-rated entries vanish, so only users who rated
        # both movies contribute to the dot product and to each magnitude.
        dots = (r_a.T @ r_c).toarray()
        anchor_mag_sq = (r_a.multiply(r_a).T @ p_c).toarray()
        candidate_mag_sq = (p_a.T @ r_c.multiply(r_c)).toarray()
        magnitude = np.sqrt(anchor_mag_sq * candidate_mag_sq)

        sims = np.zeros_like(dots)
        np.divide(dots, magnitude, out=sims, where=magnitude > 0)
        return sims

    def recommend_item_based(
        self,
        user_id: str,
        limit: int = 10,
        exclude: Iterable[str] | None = None,
    ) -> list[ScoredMovie]:
        """
        Score unwatched catalog movies by similarity to what the user rated.

        Each rated movie adds similarity x the user's rating to every candidate.
        """
        seen = self._seen(user_id, exclude)
        target = self.ratings.user_ratings(user_id)
        anchor_ids = list(target)
        candidate_ids = [m for m in self.movies if m not in seen]
        if not anchor_ids or not candidate_ids:
            return []

        sims = self.item_similarities(anchor_ids, candidate_ids)
        weights = np.array([target[m] for m in anchor_ids], dtype=float)
        totals = weights @ sims

        # Candidates nobody co-rated with an anchor have no evidence at all
        related = np.any(sims > 0, axis=0)
        scores = {
            movie_id: float(total)
            for movie_id, total, has_evidence in zip(candidate_ids, totals, related)
            if has_evidence
        }
        results = self._rank(scores, limit, REASON_SIMILAR_MOVIES)
        logger.debug(f"Item-based: {len(anchor_ids)} anchors -> {len(results)} candidates for {user_id}")
        return results

    def recommend(
        self,
        user_id: str,
        limit: int = 10,
        method: str = USER_BASED,
        exclude: Iterable[str] | None = None,
    ) -> list[ScoredMovie]:
        if method == USER_BASED:
            return self.recommend_user_based(user_id, limit, exclude)
        if method == ITEM_BASED:
            return self.recommend_item_based(user_id, limit, exclude)
        raise ValueError(f"Unknown collaborative method '{method}' (expected one of: {', '.join(METHODS)})")
