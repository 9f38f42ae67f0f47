"""Word mastery console drill – terminal entry point.

Type what you read for each word; the spoken-answer matcher decides
whether it counts.  An empty line counts as a miss.

    python main.py cat dog sun
    python main.py --threshold 2 --limit 10 the cat sat on the mat
    python main.py --history their there read
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from wordmastery.config import settings
from wordmastery.database import async_session, init_db
from wordmastery.services.leverage import prioritize
from wordmastery.services.matcher import default_matcher
from wordmastery.services.review import summarize_review
from wordmastery.services.scheduler import Mode, SessionScheduler
from wordmastery.services.word_stats import load_word_stats

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:    %(name)s - %(message)s",
    stream=sys.stdout,
    force=True,
)

log = logging.getLogger(__name__)


async def _prioritised_deck(words: list[str], limit: int) -> list[str]:
    """Order the deck by leverage using the stored global word stats."""
    await init_db()
    async with async_session() as db:
        stats = await load_word_stats(db, words)
    ranked = prioritize(words, set(), stats)
    return ranked[:limit] if limit > 0 else ranked


def run_drill(words: list[str], mode: Mode, threshold: int) -> None:
    scheduler = SessionScheduler(
        on_word_mastered=lambda w: print(f"  ★ {w} unlocked!"),
    )
    scheduler.initialize(words, mastery_threshold=threshold, mode=mode)

    while not scheduler.is_complete:
        target = scheduler.current_text()
        progress = scheduler.word_progress(scheduler.current_word())
        try:
            spoken = input(f"[{progress.session_correct_count}/{scheduler.mastery_threshold}] Read: {target}\n> ")
        except EOFError:
            print()
            log.info("Input closed – ending drill early")
            return
        verdict = default_matcher.verdict(spoken, target)
        print("  ✔ yes!" if verdict.is_match else f"  ✘ that was {target!r}")
        scheduler.submit_answer(verdict.is_match)

    stats = scheduler.progress()
    print(f"Done: {stats.total_correct}/{stats.total_attempts} correct answers.")
    if mode is Mode.HISTORY:
        summary = summarize_review(scheduler.results)
        print(f"Review: {summary.correct} right, {summary.missed} missed.")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Drill reading words until mastered.")
    parser.add_argument("words", nargs="+", help="words to practise")
    parser.add_argument("--history", action="store_true", help="show every word once (review mode)")
    parser.add_argument(
        "--threshold",
        type=int,
        default=settings.default_mastery_threshold,
        help="correct reads needed per word (mastery mode)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="only drill the N highest-leverage words (uses stored word stats)",
    )
    args = parser.parse_args(argv)
    if args.threshold < 1:
        parser.error("--threshold must be at least 1")

    words = args.words
    if args.limit:
        words = asyncio.run(_prioritised_deck(words, args.limit))
        log.info("Drilling top %d words by leverage: %s", len(words), ", ".join(words))

    mode = Mode.HISTORY if args.history else Mode.MASTERY
    run_drill(words, mode, args.threshold)
    return 0


if __name__ == "__main__":
    sys.exit(main())
