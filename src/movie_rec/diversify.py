"""Greedy re-ranking that trades some relevance for genre variety."""
import logging

from .config import DEFAULT_DIVERSITY_FACTOR
from .models import HybridRecommendation, Movie

logger = logging.getLogger(__name__)


def genre_similarity(a: Movie, b: Movie) -> float:
    """Shared genres over the larger genre set; 0.0 when neither has genres."""
    genres_a, genres_b = set(a.genres), set(b.genres)
    total = max(len(genres_a), len(genres_b))
    if total == 0:
        return 0.0
    return len(genres_a & genres_b) / total


def diversify(
    recommendations: list[HybridRecommendation],
    diversity_factor: float = DEFAULT_DIVERSITY_FACTOR,
) -> list[HybridRecommendation]:
    """
    Reorder recommendations to reduce genre redundancy.

    Starts from the top-ranked item, then repeatedly picks the remaining
    candidate with the highest score * (1 - factor) + diversity * factor,
    where diversity is 1 - mean genre similarity to everything already
    picked. Equal final scores keep input order.

    Returns a new list holding exactly the input items.
    """
    if not 0.0 <= diversity_factor <= 1.0:
        raise ValueError(f"diversity_factor must be within [0, 1], got {diversity_factor}")
    if not recommendations:
        return []
    # Nothing to trade off: keep the relevance order as is
    if diversity_factor == 0:
        return list(recommendations)

    selected = [recommendations[0]]
    remaining = list(recommendations[1:])

    while remaining:
        best_index = 0
        best_score = float("-inf")
        for i, rec in enumerate(remaining):
            total = sum(genre_similarity(rec.movie, chosen.movie) for chosen in selected)
            diversity = 1 - total / len(selected)
            final_score = rec.score * (1 - diversity_factor) + diversity * diversity_factor
            if final_score > best_score:
                best_index, best_score = i, final_score
        selected.append(remaining.pop(best_index))

    moved = sum(1 for before, after in zip(recommendations, selected) if before is not after)
    logger.debug(f"Diversified {len(selected)} recommendations (factor {diversity_factor}, {moved} moved)")
    return selected
