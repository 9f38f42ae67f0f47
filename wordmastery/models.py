"""SQLAlchemy ORM models read by the engine."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from wordmastery.database import Base


# ---------------------------------------------------------------------------
# Global word statistics (recomputed elsewhere whenever the book corpus changes)
# ---------------------------------------------------------------------------


class GlobalWordStats(Base):
    __tablename__ = "global_word_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)  # lower-case
    book_count: Mapped[int] = mapped_column(Integer, default=0)
    total_occurrences: Mapped[int] = mapped_column(Integer, default=0)
    leverage_score: Mapped[int] = mapped_column(Integer, default=0)
    last_updated: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
