"""
Configuration constants for the movie recommendation engine.

Tunable numbers live here. Request defaults and the strategy thresholds
can be overridden with MOVIE_REC_* environment variables; out-of-range
overrides are clamped and unparseable ones are ignored, both with a warning.
"""
import os
import logging

logger = logging.getLogger(__name__)


def _read_env(key: str, default, cast):
    """Value of a MOVIE_REC_* override converted with cast, or default when unset/unparseable."""
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Invalid {key}='{raw}', using default {default}")
        return default


def _clamp(key: str, val, min_val, max_val=None):
    if val < min_val:
        logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
        return min_val
    if max_val is not None and val > max_val:
        logger.warning(f"{key}={val} is above maximum {max_val}, using {max_val}")
        return max_val
    return val


def _get_float_env(key: str, default: float, min_val: float = 0, max_val: float | None = None) -> float:
    """
    Float override such as a weight or the diversity factor.

    Args:
        key: Environment variable name
        default: Value used when the variable is unset or not a number
        min_val: Lower clamp
        max_val: Upper clamp (None = unbounded)
    """
    return _clamp(key, _read_env(key, default, float), min_val, max_val)


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """Integer override such as a result limit or a rating-count threshold, clamped to min_val."""
    return _clamp(key, _read_env(key, default, int), min_val)


# Request defaults
DEFAULT_LIMIT = _get_int_env("MOVIE_REC_DEFAULT_LIMIT", 10, min_val=1)
DEFAULT_DIVERSITY_FACTOR = _get_float_env("MOVIE_REC_DIVERSITY_FACTOR", 0.3, min_val=0.0, max_val=1.0)
CANDIDATE_POOL_MULTIPLIER = 2  # Ask each stage for more than we show

# Ratings
MAX_RATING = 5.0  # Implicit ratings are capped at this value

# Watch-history interactions (callers that only hold a list of watched movies)
HISTORY_BASE_WEIGHT = 3.0
HISTORY_RECENCY_STEP = 0.1  # Added per position, most recent first

# Collaborative filtering
DEFAULT_SIMILAR_USERS = _get_int_env("MOVIE_REC_SIMILAR_USERS", 20, min_val=1)

# Content-based weights (sum to 1.0)
CONTENT_WEIGHTS = {
    'genre': 0.3,
    'country': 0.2,
    'director': 0.2,
    'actor': 0.2,
    'year': 0.1,
}
YEAR_PROXIMITY_SPAN = 20  # Years apart at which year similarity reaches 0

# User profile caps (most frequent values kept per field)
PROFILE_TOP_GENRES = 5
PROFILE_TOP_COUNTRIES = 5
PROFILE_TOP_DIRECTORS = 3
PROFILE_TOP_ACTORS = 10

# Hybrid strategies
DEFAULT_COLLABORATIVE_WEIGHT = 0.6
DEFAULT_CONTENT_WEIGHT = 0.4
ADAPTIVE_COLLABORATIVE_WEIGHT = 0.7
ADAPTIVE_CONTENT_WEIGHT = 0.3

COLD_START_RATINGS = _get_int_env("MOVIE_REC_COLD_START_RATINGS", 5, min_val=0)  # Switching threshold
ADAPTIVE_MIN_USER_RATINGS = _get_int_env("MOVIE_REC_ADAPTIVE_MIN_USER_RATINGS", 3, min_val=0)
ADAPTIVE_MIN_TOTAL_RATINGS = _get_int_env("MOVIE_REC_ADAPTIVE_MIN_TOTAL_RATINGS", 100, min_val=0)

# Confidence assigned by each strategy
CONFIDENCE = {
    'weighted_agreement': 0.9,  # Both sources scored the movie
    'weighted_single': 0.6,
    'switching_content': 0.7,
    'switching_collaborative': 0.8,
    'cascade_collaborative': 0.9,
    'cascade_content': 0.75,
    'popular': 0.5,
}

# Popularity fallback (no watch history and no ratings)
POPULAR_MIN_WEIGHT = _get_float_env("MOVIE_REC_POPULAR_MIN_WEIGHT", 0.7, min_val=0.0)

# Reason strings shown alongside recommendations
REASON_SIMILAR_USERS = "Viewers with similar taste liked this"
REASON_SIMILAR_MOVIES = "Similar to movies you rated highly"
REASON_COMMUNITY = "Highly rated by the community"
REASON_YOUR_TASTE = "Based on your viewing preferences"
REASON_POPULAR = "Trending with other viewers"
