"""Feature extraction for movies and user profiles."""
import logging
import math
from collections import Counter
from typing import Iterable

from .config import (
    PROFILE_TOP_GENRES,
    PROFILE_TOP_COUNTRIES,
    PROFILE_TOP_DIRECTORS,
    PROFILE_TOP_ACTORS,
)
from .models import Movie, MovieFeatures

logger = logging.getLogger(__name__)

USER_PROFILE_ID = "user-profile"


def _tokens(text: str) -> list[str]:
    return [t for t in text.lower().split(" ") if t]


def extract_features(movie: Movie) -> MovieFeatures:
    """Pull genre/country/director/actor slugs, year and title keywords from a catalog movie."""
    return MovieFeatures(
        movie_id=movie.id,
        genres=movie.genres,
        countries=movie.countries,
        directors=movie.directors,
        actors=movie.actors,
        year=movie.year or 0,
        keywords=tuple(_tokens(movie.name) + _tokens(movie.origin_name)),
    )


def top_items(items: Iterable[str], limit: int) -> tuple[str, ...]:
    """Most frequent values first; equal counts keep first-seen order."""
    return tuple(item for item, _ in Counter(items).most_common(limit))


def build_user_profile(watched_movies: list[Movie]) -> MovieFeatures:
    """
    Aggregate watched movies into a single MovieFeatures-shaped profile.

    Keeps the most frequent genres, countries, directors and actors, and the
    rounded mean of known release years (0 when none are known).
    """
    genres: list[str] = []
    countries: list[str] = []
    directors: list[str] = []
    actors: list[str] = []
    years: list[int] = []

    for movie in watched_movies:
        features = extract_features(movie)
        genres.extend(features.genres)
        countries.extend(features.countries)
        directors.extend(features.directors)
        actors.extend(features.actors)
        if features.year > 0:
            years.append(features.year)

    profile = MovieFeatures(
        movie_id=USER_PROFILE_ID,
        genres=top_items(genres, PROFILE_TOP_GENRES),
        countries=top_items(countries, PROFILE_TOP_COUNTRIES),
        directors=top_items(directors, PROFILE_TOP_DIRECTORS),
        actors=top_items(actors, PROFILE_TOP_ACTORS),
        # Round half up, not to even
        year=math.floor(sum(years) / len(years) + 0.5) if years else 0,
    )
    logger.debug(
        f"Built profile from {len(watched_movies)} movies: "
        f"{len(profile.genres)} genres, {len(profile.directors)} directors, year {profile.year}"
    )
    return profile


def compute_tfidf(documents: list[list[str]], index: int) -> dict[str, float]:
    """
    TF-IDF weights for the terms of one tokenized document.

    tf = term count / document length, idf = log(N / document frequency).

    Args:
        documents: Tokenized corpus (e.g. MovieFeatures.keywords per movie)
        index: Position of the document to weight

    Returns:
        term -> tf-idf weight (empty for an empty document)
    """
    doc = documents[index]
    if not doc:
        return {}

    doc_freq: Counter = Counter()
    for d in documents:
        doc_freq.update(set(d))

    total_docs = len(documents)
    return {
        term: (count / len(doc)) * math.log(total_docs / doc_freq[term])
        for term, count in Counter(doc).items()
    }
