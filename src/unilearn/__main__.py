"""Command line entry point for the study backend."""
import argparse
import logging
import sys
from typing import List, Optional

from unilearn.config import settings
from unilearn.logging_config import setup_logging
from unilearn.models.base import SessionLocal, init_db
from unilearn.monitoring import start_monitoring
from unilearn.services.flashcard_service import FlashcardService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="unilearn", description="Flashcard study backend")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    review = subparsers.add_parser("review", help="Review a flashcard")
    review.add_argument("user_id", type=int)
    review.add_argument("card_id", type=int)
    review.add_argument("quality", type=int, help="Recall quality from 0 (blackout) to 5 (perfect)")

    due = subparsers.add_parser("due", help="List the user's cards due for review")
    due.add_argument("user_id", type=int)

    stats = subparsers.add_parser("stats", help="Show the user's progress over a set")
    stats.add_argument("user_id", type=int)
    stats.add_argument("set_id", type=int)

    return parser


def run(args: argparse.Namespace) -> int:
    """Execute a parsed command."""
    init_db()
    if args.command == "init-db":
        logger.info("Database initialized")
        return EXIT_OK

    db = SessionLocal()
    try:
        service = FlashcardService(db)

        if args.command == "review":
            result = service.review_card(args.user_id, args.card_id, args.quality)
            print(result.message)
            print(
                f"interval={result.interval_days}d ease_factor={result.ease_factor:.2f} "
                f"repetitions={result.repetitions} next_review={result.next_review_date.isoformat()}"
            )
            if result.set_completed:
                print("Set completed!")

        elif args.command == "due":
            due = service.get_due_progress(args.user_id)
            if not due:
                print("Nothing to review")
            for progress in due:
                print(f"card {progress.flashcard_id}: due {progress.next_review_date.isoformat()}")

        elif args.command == "stats":
            stats = service.get_set_statistics(args.user_id, args.set_id)
            if stats is None:
                raise ValueError(f"Flashcard set {args.set_id} not found")
            print(
                f"cards={stats.total_cards} reviewed={stats.reviewed_cards} "
                f"mastered={stats.mastered_cards} due={stats.cards_due_for_review} "
                f"progress={stats.progress_percentage:.0f}% mastery={stats.mastery_percentage:.0f}% "
                f"completed={stats.is_completed}"
            )
    finally:
        db.close()

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_INVALID_INPUT


def cli() -> None:
    """Console script entry point."""
    setup_logging("Starting unilearn ...")

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)

    sys.exit(main())


if __name__ == "__main__":
    cli()
