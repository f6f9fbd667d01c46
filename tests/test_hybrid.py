import pytest

from movie_rec import hybrid
from movie_rec.collaborative import CollaborativeRecommender
from movie_rec.config import REASON_SIMILAR_MOVIES
from movie_rec.content import ContentBasedRecommender
from movie_rec.hybrid import HybridCombiner, HybridWeights, Strategy, select_strategy


# Target "u0" agrees perfectly with u1 and u2, who between them rated M1-M5
RICH_RATINGS = {
    "u0": {"A": 5, "B": 4, "C": 3},
    "u1": {"A": 5, "B": 4, "C": 3, "M1": 5, "M2": 4, "M3": 3},
    "u2": {"A": 4, "B": 3, "C": 2, "M4": 5, "M5": 2},
}


@pytest.fixture
def catalog(make_movie):
    movies = [make_movie(m, genres=["drama"], year=2000) for m in ["A", "B", "C"]]
    movies += [make_movie(f"M{i}", genres=["thriller"], year=1990) for i in range(1, 6)]
    movies += [make_movie(f"X{i}", genres=["drama"], year=2000 + i) for i in range(1, 11)]
    return movies


def _combiner(ratings, catalog, method="user"):
    return HybridCombiner(
        CollaborativeRecommender(ratings, catalog),
        ContentBasedRecommender(catalog),
        ratings,
        collaborative_method=method,
    )


def _watched(catalog, ids):
    return [m for m in catalog if m.id in ids]


@pytest.mark.parametrize(
    "user_count,total_count,expected",
    [
        (0, 1000, Strategy.SWITCHING),
        (2, 50, Strategy.SWITCHING),
        (3, 50, Strategy.CASCADE),
        (3, 99, Strategy.CASCADE),
        (3, 100, Strategy.WEIGHTED),
        (40, 5000, Strategy.WEIGHTED),
    ],
)
def test_select_strategy(user_count, total_count, expected):
    assert select_strategy(user_count, total_count) is expected


def test_strategy_parse():
    assert Strategy.parse("Cascade") is Strategy.CASCADE
    with pytest.raises(ValueError, match="Unknown strategy"):
        Strategy.parse("feature-combination")


def test_negative_weights_are_rejected():
    with pytest.raises(ValueError):
        HybridWeights(collaborative=-0.1, content_based=1.0)


def test_combine_rejects_non_positive_limit(make_ratings, catalog):
    with pytest.raises(ValueError):
        _combiner(make_ratings(RICH_RATINGS), catalog).combine("u0", [], limit=0)


def test_weighted_with_full_collaborative_weight_matches_collaborative_ranking(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)
    combiner = _combiner(ratings, catalog)
    watched = _watched(catalog, {"A", "B", "C"})

    recs = combiner.weighted("u0", watched, limit=5, weights=HybridWeights(1.0, 0.0))
    collab = combiner.collaborative.recommend("u0", limit=5, exclude={"A", "B", "C"})

    assert [r.movie.id for r in recs] == [c.movie.id for c in collab]
    assert [r.movie.id for r in recs] == ["M1", "M4", "M2", "M3", "M5"]


def test_weighted_blends_scores_and_sets_confidence(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)
    watched = _watched(catalog, {"A", "B", "C"})

    recs = _combiner(ratings, catalog).weighted("u0", watched, limit=8)

    assert len(recs) <= 8
    assert [r.score for r in recs] == sorted((r.score for r in recs), reverse=True)
    for r in recs:
        assert r.movie.id not in {"A", "B", "C"}
        expected = 0.6 * r.sources.collaborative + 0.4 * r.sources.content_based
        assert r.score == pytest.approx(expected)
        assert r.sources.hybrid == pytest.approx(r.score)
        both = r.sources.collaborative > 0 and r.sources.content_based > 0
        assert r.confidence == (0.9 if both else 0.6)


def test_switching_uses_content_for_cold_users(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)  # u0 has only 3 ratings
    watched = _watched(catalog, {"A", "B", "C"})

    recs = _combiner(ratings, catalog).switching("u0", watched, limit=5)

    assert len(recs) == 5
    assert all(r.sources.collaborative == 0 for r in recs)
    assert all(r.confidence == 0.7 for r in recs)


def test_switching_uses_collaborative_for_established_users(make_ratings, catalog):
    table = dict(RICH_RATINGS)
    table["u0"] = {"A": 5, "B": 4, "C": 3, "X9": 2, "X10": 1}
    table["u1"] = {**RICH_RATINGS["u1"], "X9": 2, "X10": 1}
    ratings = make_ratings(table)

    recs = _combiner(ratings, catalog).switching("u0", _watched(catalog, {"A", "B", "C"}), limit=5)

    assert recs
    assert all(r.sources.content_based == 0 for r in recs)
    assert all(r.confidence == 0.8 for r in recs)
    assert {"X9", "X10"}.isdisjoint(r.movie.id for r in recs)


def test_cascade_fills_remaining_slots_from_content(make_ratings, make_movie):
    catalog = [make_movie(m, genres=["drama"]) for m in ["A", "B", "C"]]
    catalog += [make_movie(f"M{i}", genres=["thriller"]) for i in range(1, 4)]
    catalog += [make_movie(f"X{i}", genres=["drama"], year=2000 + i) for i in range(1, 11)]
    ratings = make_ratings({
        "u0": {"A": 5, "B": 4, "C": 3},
        "u1": {"A": 5, "B": 4, "C": 3, "M1": 5, "M2": 4, "M3": 3},
    })

    recs = _combiner(ratings, catalog).cascade("u0", _watched(catalog, {"A", "B", "C"}), limit=10)

    assert len(recs) == 10
    collaborative = [r for r in recs if r.confidence == 0.9]
    content = [r for r in recs if r.confidence == 0.75]
    assert {r.movie.id for r in collaborative} == {"M1", "M2", "M3"}
    assert len(content) == 7
    assert [r.score for r in recs] == sorted((r.score for r in recs), reverse=True)


def test_cascade_stops_when_content_pool_runs_out(make_ratings, make_movie):
    catalog = [make_movie(m, genres=["drama"]) for m in ["A", "B", "C", "M1", "M2", "M3", "X1", "X2"]]
    ratings = make_ratings({
        "u0": {"A": 5, "B": 4, "C": 3},
        "u1": {"A": 5, "B": 4, "C": 3, "M1": 5, "M2": 4, "M3": 3},
    })

    recs = _combiner(ratings, catalog).cascade("u0", _watched(catalog, {"A", "B", "C"}), limit=10)

    assert sorted(r.movie.id for r in recs) == ["M1", "M2", "M3", "X1", "X2"]


def test_cascade_caps_collaborative_stage_at_half_limit(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)

    recs = _combiner(ratings, catalog).cascade("u0", _watched(catalog, {"A", "B", "C"}), limit=4)

    assert len(recs) == 4
    assert sum(1 for r in recs if r.confidence == 0.9) == 2


def test_adaptive_cold_start_is_content_only(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)
    watched = _watched(catalog, {"A", "B"})

    recs = _combiner(ratings, catalog).combine("newcomer", watched, limit=6)

    assert recs
    assert all(r.sources.collaborative == 0 for r in recs)
    assert {"A", "B"}.isdisjoint(r.movie.id for r in recs)


def test_adaptive_sparse_data_runs_cascade(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)  # 14 ratings in total

    recs = _combiner(ratings, catalog).adaptive("u0", _watched(catalog, {"A", "B", "C"}), limit=6)

    assert recs
    assert {r.confidence for r in recs} <= {0.9, 0.75}


def test_adaptive_rich_data_uses_adaptive_weights(make_ratings, catalog, monkeypatch):
    combiner = _combiner(make_ratings(RICH_RATINGS), catalog)
    captured = {}

    def fake_weighted(user_id, watched_movies, limit=10, weights=None):
        captured["weights"] = weights
        return []

    monkeypatch.setattr(hybrid, "select_strategy", lambda user_count, total_count: Strategy.WEIGHTED)
    monkeypatch.setattr(combiner, "weighted", fake_weighted)

    combiner.combine("u0", [], limit=5)

    assert captured["weights"] == HybridWeights(0.7, 0.3)


def test_item_based_method_feeds_hybrid(make_ratings, catalog):
    ratings = make_ratings(RICH_RATINGS)
    watched = _watched(catalog, {"A", "B", "C"})

    recs = _combiner(ratings, catalog, method="item").weighted("u0", watched, limit=5)

    assert any(REASON_SIMILAR_MOVIES in r.reasons for r in recs)


def test_weighted_full_collaborative_weight_with_small_collaborative_pool(make_ratings, make_movie):
    catalog = [make_movie(m, genres=["drama"]) for m in ["A", "B", "C", "M1", "M2", "X1", "X2", "X3"]]
    ratings = make_ratings({
        "u0": {"A": 5, "B": 4, "C": 3},
        "u1": {"A": 5, "B": 4, "C": 3, "M1": 5, "M2": 4},
    })
    combiner = _combiner(ratings, catalog)

    recs = combiner.weighted("u0", _watched(catalog, {"A", "B", "C"}), limit=5, weights=HybridWeights(1.0, 0.0))
    collab = combiner.collaborative.recommend("u0", limit=5, exclude={"A", "B", "C"})

    assert [r.movie.id for r in recs] == [c.movie.id for c in collab] == ["M1", "M2"]
    assert all(r.score > 0 for r in recs)


def test_weighted_full_content_weight_drops_collaborative_only_movies(make_ratings, make_movie):
    catalog = [make_movie(m, genres=["drama"]) for m in ["A", "B", "C", "X1"]]
    catalog += [make_movie(m, genres=["horror"], countries=["jp"], year=1950) for m in ["M1", "M2"]]
    ratings = make_ratings({
        "u0": {"A": 5, "B": 4, "C": 3},
        "u1": {"A": 5, "B": 4, "C": 3, "M1": 5, "M2": 4},
    })

    recs = _combiner(ratings, catalog).weighted(
        "u0", _watched(catalog, {"A", "B", "C"}), limit=5, weights=HybridWeights(0.0, 1.0)
    )

    assert all(r.sources.content_based > 0 for r in recs)
    assert "X1" in {r.movie.id for r in recs}


def test_switching_established_user_with_flat_ratings(make_ratings, make_movie):
    catalog = [make_movie(m) for m in ["A", "B", "C", "D", "E", "M1", "M2"]]
    ratings = make_ratings({
        "u0": {m: 3 for m in ["A", "B", "C", "D", "E"]},
        "u1": {"A": 3, "B": 3, "M1": 3, "M2": 3},
    })
    watched = _watched(catalog, {"A", "B", "C", "D", "E"})

    recs = _combiner(ratings, catalog).switching("u0", watched, limit=5)

    assert [r.movie.id for r in recs] == ["M1", "M2"]
    assert all(r.sources.content_based == 0 for r in recs)
    assert all(r.confidence == 0.8 for r in recs)
