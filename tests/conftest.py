import importlib
import sys
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def fresh_config(monkeypatch):
    """
    Reload config after env overrides; restore the defaults afterwards.
    """
    import movie_rec.config as config

    def reload():
        return importlib.reload(config)

    yield reload

    monkeypatch.undo()
    importlib.reload(config)


@pytest.fixture
def make_movie():
    """Factory for catalog movies with sensible empty defaults."""
    from movie_rec.models import Movie

    def _movie(movie_id, genres=(), countries=(), directors=(), actors=(), year=2020, name=None):
        return Movie(
            id=movie_id,
            name=name or movie_id.title(),
            slug=movie_id,
            year=year,
            genres=tuple(genres),
            countries=tuple(countries),
            directors=tuple(directors),
            actors=tuple(actors),
        )

    return _movie


@pytest.fixture
def make_ratings():
    """Build a RatingIndex from {user: {movie: rating}} (insertion order preserved)."""
    from movie_rec.models import Rating
    from movie_rec.ratings import RatingIndex

    def _ratings(table):
        return RatingIndex(
            Rating(user_id=user, movie_id=movie, rating=float(value))
            for user, movies in table.items()
            for movie, value in movies.items()
        )

    return _ratings
