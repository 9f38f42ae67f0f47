"""Read a snapshot of global word statistics for leverage scoring."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordmastery.models import GlobalWordStats
from wordmastery.services.leverage import WordStat

logger = logging.getLogger(__name__)


async def load_word_stats(
    db: AsyncSession,
    words: Optional[Iterable[str]] = None,
) -> dict[str, WordStat]:
    """Return ``{word: WordStat}`` for *words* (or the whole table).

    Words are looked up lower-cased.  Missing words are simply absent
    from the result; the scorer treats them as score 0.
    """
    query = select(GlobalWordStats)
    if words is not None:
        wanted = sorted({w.lower().strip() for w in words if w and w.strip()})
        if not wanted:
            return {}
        query = query.where(GlobalWordStats.word.in_(wanted))

    result = await db.execute(query)
    rows = result.scalars().all()

    snapshot = {
        row.word: WordStat(
            word=row.word,
            book_count=row.book_count,
            total_occurrences=row.total_occurrences,
        )
        for row in rows
    }
    logger.info("Loaded %d global word stats", len(snapshot))
    return snapshot
