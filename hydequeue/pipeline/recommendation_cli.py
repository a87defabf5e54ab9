import argparse
import json
import logging
from pathlib import Path

from hydequeue.config import settings
from hydequeue.core.track_metadata import normalize_track
from hydequeue.recommendation.candidate_scorer import SessionContext
from hydequeue.recommendation.profile_insights import build_profile_insights
from hydequeue.recommendation.recommendation_engine import TasteRecommendationEngine

logger = logging.getLogger(__name__)


def _load_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _build_parser():
    parser = argparse.ArgumentParser(
        description="Replay listening events into a taste profile and rank auto-queue candidates."
    )
    parser.add_argument("--events", type=str, help="JSON file with a list of listening events")
    parser.add_argument("--candidates", type=str, help="JSON file with a list of candidate tracks")
    parser.add_argument("--current", type=str, default="", help="JSON file with the current track")
    parser.add_argument("--count", type=int, default=settings.AUTO_QUEUE_COUNT)
    parser.add_argument("--skip-count", type=int, default=0)
    parser.add_argument("--repeat-count", type=int, default=0)
    parser.add_argument("--import-profile", type=str, default="", help="Exported profile to start from")
    parser.add_argument("--export-to", type=str, default="", help="Write the resulting profile here")
    parser.add_argument("--json", action="store_true", help="Print raw JSON payload")
    parser.add_argument("--log-level", type=str, default=settings.LOG_LEVEL)
    return parser


# Run this operation.
def main(argv=None):
    """
    Run the command entry point.

    Returns a process exit code so it can be called from tests.
    """
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="[%(levelname)s] %(asctime)s %(message)s",
    )
    engine = TasteRecommendationEngine()

    if args.import_profile:
        blob = Path(args.import_profile).read_text(encoding="utf-8")
        if not engine.import_profile(blob):
            logger.error("Could not import %s", args.import_profile)
            return 1

    events = _load_json(args.events) if args.events else []
    for raw in events:
        engine.record_event(raw)

    candidates = [normalize_track(row) for row in _load_json(args.candidates)] if args.candidates else []
    current = normalize_track(_load_json(args.current)) if args.current else None
    context = SessionContext(
        current_track=current,
        skip_count=args.skip_count,
        repeat_count=args.repeat_count,
    )
    scored = engine.recommend_scored(candidates, context, args.count)
    insights = build_profile_insights(engine)

    if args.export_to:
        Path(args.export_to).write_text(engine.export_profile(), encoding="utf-8")

    if args.json:
        payload = {
            "strategy": engine.strategy(),
            "insights": insights,
            "recommendations": [
                {"track": item["track"], "score": item["score"], "reasons": item["reasons"]}
                for item in scored
            ],
        }
        print(json.dumps(payload, indent=2))
        return 0

    print(f"Strategy: {engine.strategy()}")
    print(f"Discovery: {insights['discovery_level']:.0f}% ({insights['discovery_label']})")
    print(f"Favorite artists: {', '.join(insights['favorite_artists']) or '-'}")
    print(f"\nTop {len(scored)} Recommendations:")
    print("-" * 50)
    for i, item in enumerate(scored):
        track = item["track"]
        print(f"{i + 1}. {track['title']} - {track['artist']}")
        reasons = " | ".join(f"{k}={v:.1f}" for k, v in item["reasons"].items())
        print(f"    Score: {item['score']:.2f} | {reasons}")
    print("-" * 50)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
