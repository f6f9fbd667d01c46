import argparse
import json
import logging
import sys
from pathlib import Path

from .collaborative import METHODS, USER_BASED
from .config import DEFAULT_DIVERSITY_FACTOR, DEFAULT_LIMIT
from .content import ContentBasedRecommender
from .hybrid import HybridWeights, Strategy
from .models import HybridRecommendation, Interaction, Movie
from .ratings import interactions_from_history
from .service import RecommendationService

logger = logging.getLogger(__name__)


def _load_records(path: str) -> list[dict]:
    """Load a JSON array (or an object wrapping one under 'items'/'data')."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("items", payload.get("data", []))
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a JSON array of records")
    return payload


def load_catalog(path: str) -> list[Movie]:
    return [Movie.from_dict(record) for record in _load_records(path)]


def load_interactions(path: str) -> list[Interaction]:
    return [Interaction.from_dict(record) for record in _load_records(path)]


def _resolve_watched(catalog: list[Movie], watched_ids: list[str] | None) -> list[Movie] | None:
    if not watched_ids:
        return None
    by_id = {m.id: m for m in catalog}
    missing = [movie_id for movie_id in watched_ids if movie_id not in by_id]
    if missing:
        logger.warning(f"Watched movies not in catalog (ignored): {', '.join(missing)}")
    return [by_id[movie_id] for movie_id in watched_ids if movie_id in by_id]


def _output_recommendations(recs: list[HybridRecommendation], args: argparse.Namespace, title: str) -> None:
    """Format and log recommendations in the requested format."""
    if args.format == 'json':
        logger.info(json.dumps([r.to_dict() for r in recs], indent=2, ensure_ascii=False))
        return

    logger.info(f"\n{title}:")
    for i, r in enumerate(recs, 1):
        year = f" ({r.movie.year})" if r.movie.year else ""
        logger.info(f"{i}. {r.movie.name or r.movie.id}{year} - Score: {r.score:.2f} (confidence {r.confidence:.0%})")
        if r.reasons:
            logger.info(f"   Why: {', '.join(r.reasons)}")


def cmd_recommend(args: argparse.Namespace) -> None:
    """Generate recommendations for one user."""
    catalog = load_catalog(args.catalog)
    watched = _resolve_watched(catalog, args.watched)

    if args.interactions:
        interactions = load_interactions(args.interactions)
    elif watched:
        interactions = interactions_from_history(args.user, watched)
    else:
        raise ValueError("Provide --interactions or at least one --watched movie id")

    weights = None
    if args.collab_weight is not None or args.content_weight is not None:
        defaults = HybridWeights()
        weights = HybridWeights(
            collaborative=defaults.collaborative if args.collab_weight is None else args.collab_weight,
            content_based=defaults.content_based if args.content_weight is None else args.content_weight,
        )

    service = RecommendationService(collaborative_method=args.method)
    recs = service.recommend(
        args.user,
        interactions,
        catalog,
        watched_movies=watched,
        limit=args.limit,
        diversify=not args.no_diversify,
        diversity_factor=args.diversity_factor,
        strategy=args.strategy,
        weights=weights,
    )

    if not recs:
        logger.warning(f"No recommendations for '{args.user}'")
    _output_recommendations(recs, args, f"Top {len(recs)} recommendations for {args.user} ({args.strategy})")


def cmd_similar(args: argparse.Namespace) -> None:
    """Find catalog movies similar to one movie."""
    catalog = load_catalog(args.catalog)
    anchor = next((m for m in catalog if m.id == args.movie), None)
    if anchor is None:
        raise ValueError(f"Movie '{args.movie}' not found in catalog")

    similar = ContentBasedRecommender(catalog).similar_to(anchor, limit=args.limit)
    if args.format == 'json':
        output = [
            {"movie_id": s.movie.id, "name": s.movie.name, "score": round(s.score, 4), "reasons": s.reasons}
            for s in similar
        ]
        logger.info(json.dumps(output, indent=2, ensure_ascii=False))
        return

    logger.info(f"\nMovies similar to {anchor.name or anchor.id}:")
    for i, s in enumerate(similar, 1):
        logger.info(f"{i}. {s.movie.name or s.movie.id} - Score: {s.score:.2f}")
        if s.reasons:
            logger.info(f"   Shared: {', '.join(s.reasons)}")


def main():
    parser = argparse.ArgumentParser(description="Hybrid Movie Recommender")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Recommend command
    rec_parser = subparsers.add_parser("recommend", help="Generate recommendations")
    rec_parser.add_argument("--catalog", required=True, help="JSON file with the movie catalog")
    rec_parser.add_argument("--interactions", help="JSON file with the interaction log")
    rec_parser.add_argument("--user", required=True, help="Target user id")
    rec_parser.add_argument("--watched", nargs="+", help="Watched movie ids, most recent first")
    rec_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Number of recommendations")
    rec_parser.add_argument("--strategy", choices=[s.value for s in Strategy],
                            default=Strategy.ADAPTIVE.value, help="Hybrid strategy")
    rec_parser.add_argument("--method", choices=METHODS, default=USER_BASED,
                            help="Collaborative filtering method")
    rec_parser.add_argument("--collab-weight", type=float, help="Collaborative weight (weighted strategy)")
    rec_parser.add_argument("--content-weight", type=float, help="Content-based weight (weighted strategy)")
    rec_parser.add_argument("--no-diversify", action="store_true", help="Skip genre diversification")
    rec_parser.add_argument("--diversity-factor", type=float, default=DEFAULT_DIVERSITY_FACTOR,
                            help="Relevance/variety trade-off in [0, 1]")
    rec_parser.add_argument("--format", choices=['text', 'json'], default='text', help="Output format")
    rec_parser.set_defaults(func=cmd_recommend)

    # Similar command
    similar_parser = subparsers.add_parser("similar", help="Find movies similar to a specific movie")
    similar_parser.add_argument("movie", help="Movie id")
    similar_parser.add_argument("--catalog", required=True, help="JSON file with the movie catalog")
    similar_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Number of results")
    similar_parser.add_argument("--format", choices=['text', 'json'], default='text', help="Output format")
    similar_parser.set_defaults(func=cmd_similar)

    args = parser.parse_args()

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        args.func(args)
    except (ValueError, KeyError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
