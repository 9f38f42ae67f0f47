"""Per-session word scheduler for flashcards and review drills.

Two modes share one queue:

* ``mastery`` – a word leaves the deck only after it has been read
  correctly ``mastery_threshold`` times this session.  Missed words go
  back into the queue a few cards ahead so they stay "hot" without
  repeating back-to-back.
* ``history`` – every word is shown exactly once; the session ends when
  the initial deck is exhausted and reports every answer.

The scheduler never waits on anything.  The caller decides when to
submit an answer (a button, a countdown, a voice match).
"""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from wordmastery.config import settings

logger = logging.getLogger(__name__)


class Mode(str, enum.Enum):
    MASTERY = "mastery"
    HISTORY = "history"


class SessionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    COMPLETE = "complete"


class SchedulerError(RuntimeError):
    """Raised when an answer is submitted outside an active session."""


@dataclass
class WordProgress:
    word_id: str
    text: str
    session_correct_count: int = 0
    total_attempts: int = 0


@dataclass(frozen=True)
class AnswerResult:
    word_id: str
    is_correct: bool


@dataclass(frozen=True)
class AnswerOutcome:
    """What happened as a result of one submitted answer."""

    word_id: str
    is_correct: bool
    mastered: bool = False
    complete: bool = False
    next_word: Optional[str] = None


@dataclass(frozen=True)
class SessionProgress:
    completed: int  # mastered words (mastery) or answered words (history)
    total_words: int
    total_correct: int
    total_attempts: int

    @property
    def percent(self) -> float:
        if self.total_words == 0:
            return 0.0
        return self.completed / self.total_words * 100


WordsInput = Union[Iterable[str], Mapping[str, str]]


@dataclass
class SessionScheduler:
    """Decides which word comes next and when the session is done.

    ``rng`` should be a private ``random.Random``; sessions never share
    the module-level generator, so two children drilling at once cannot
    influence each other's shuffles.
    """

    rng: random.Random = field(default_factory=random.Random)
    on_complete: Optional[Callable[[list[Any]], None]] = None
    on_word_mastered: Optional[Callable[[str], None]] = None
    on_result: Optional[Callable[[str, bool], None]] = None
    on_next_word: Optional[Callable[[str], None]] = None
    reinsert_min_offset: int = settings.reinsert_min_offset
    reinsert_max_offset: int = settings.reinsert_max_offset

    def __post_init__(self) -> None:
        self.state = SessionState.UNINITIALIZED
        self.mode = Mode.MASTERY
        self.mastery_threshold = 1
        self._progress: dict[str, WordProgress] = {}
        self._queue: list[str] = []
        self._mastered: list[str] = []
        self._results: list[AnswerResult] = []

    # ---- Setup ----

    def initialize(
        self,
        words: WordsInput,
        mastery_threshold: Optional[int] = None,
        mode: Mode = Mode.MASTERY,
    ) -> None:
        """Start (or restart) a session, discarding all previous progress.

        *words* is either a sequence of word ids (the id doubles as the
        text) or a mapping of ``{word_id: text}``.  Duplicate ids are
        collapsed.  An empty deck completes immediately.
        """
        mode = Mode(mode)
        if mode is Mode.HISTORY:
            threshold = 1
        else:
            threshold = settings.default_mastery_threshold if mastery_threshold is None else mastery_threshold
        if threshold < 1:
            raise ValueError(f"mastery_threshold must be at least 1, got {threshold}")

        if isinstance(words, Mapping):
            pairs = list(words.items())
        else:
            pairs = [(w, w) for w in words]

        self.mode = mode
        self.mastery_threshold = threshold
        self._progress = {}
        for word_id, text in pairs:
            if word_id not in self._progress:
                self._progress[word_id] = WordProgress(word_id=word_id, text=text)
        self._mastered = []
        self._results = []
        self._queue = self._shuffled(list(self._progress))

        logger.info(
            "Session initialised: %d words, mode=%s, threshold=%d",
            len(self._progress),
            mode.value,
            threshold,
        )

        if not self._progress:
            logger.info("Nothing to schedule – completing empty session")
            self._complete()
            return

        self.state = SessionState.ACTIVE
        self._announce_next()

    # ---- Queries ----

    def current_word(self) -> Optional[str]:
        return self._queue[0] if self._queue else None

    def current_text(self) -> Optional[str]:
        word_id = self.current_word()
        return self._progress[word_id].text if word_id is not None else None

    def word_progress(self, word_id: str) -> WordProgress:
        return self._progress[word_id]

    @property
    def queue(self) -> tuple[str, ...]:
        return tuple(self._queue)

    @property
    def mastered(self) -> list[str]:
        return list(self._mastered)

    @property
    def results(self) -> list[AnswerResult]:
        return list(self._results)

    @property
    def is_complete(self) -> bool:
        return self.state is SessionState.COMPLETE

    def progress(self) -> SessionProgress:
        if self.mode is Mode.HISTORY:
            completed = len(self._results)
        else:
            completed = len(self._mastered)
        return SessionProgress(
            completed=completed,
            total_words=len(self._progress),
            total_correct=sum(p.session_correct_count for p in self._progress.values()),
            total_attempts=sum(p.total_attempts for p in self._progress.values()),
        )

    # ---- Transitions ----

    def submit_answer(self, is_correct: bool) -> AnswerOutcome:
        """Record a verdict for the word at the front of the queue."""
        if self.state is not SessionState.ACTIVE:
            raise SchedulerError(f"Cannot submit an answer while session is {self.state.value}")

        word_id = self._queue.pop(0)
        progress = self._progress[word_id]
        progress.total_attempts += 1
        if is_correct:
            progress.session_correct_count += 1

        if self.mode is Mode.HISTORY:
            mastered = False
            self._after_history_answer(word_id, is_correct)
        else:
            mastered = self._after_mastery_answer(progress)

        complete = self.state is SessionState.COMPLETE
        if not complete:
            self._announce_next()

        return AnswerOutcome(
            word_id=word_id,
            is_correct=is_correct,
            mastered=mastered,
            complete=complete,
            next_word=self.current_word(),
        )

    def _after_mastery_answer(self, progress: WordProgress) -> bool:
        word_id = progress.word_id

        if progress.session_correct_count >= self.mastery_threshold:
            self._mastered.append(word_id)
            logger.info(
                "Word mastered: %r (%d/%d)",
                progress.text,
                len(self._mastered),
                len(self._progress),
            )
            if self.on_word_mastered:
                self.on_word_mastered(word_id)

            if len(self._mastered) >= len(self._progress):
                self._complete()
            elif not self._queue:
                self._rebuild_queue()
            return True

        if not self._queue:
            # Deck ran dry: start a fresh pass over everything still unmastered.
            self._rebuild_queue()
        else:
            self._reinsert(word_id)
        return False

    def _after_history_answer(self, word_id: str, is_correct: bool) -> None:
        self._results.append(AnswerResult(word_id=word_id, is_correct=is_correct))
        if self.on_result:
            self.on_result(word_id, is_correct)
        if not self._queue:
            self._complete()

    # ---- Internals ----

    def _shuffled(self, word_ids: list[str]) -> list[str]:
        self.rng.shuffle(word_ids)
        return word_ids

    def _rebuild_queue(self) -> None:
        mastered = set(self._mastered)
        remaining = [w for w in self._progress if w not in mastered]
        self._queue = self._shuffled(remaining)
        logger.debug("Queue rebuilt with %d unmastered words", len(remaining))

    def _reinsert(self, word_id: str) -> None:
        # Window is clamped to the queue length; with fewer than 3 cards
        # left the word simply goes to the back.
        low = min(self.reinsert_min_offset, len(self._queue))
        high = min(self.reinsert_max_offset, len(self._queue))
        position = self.rng.randint(low, high)
        self._queue.insert(position, word_id)
        logger.debug("Reinserted %r at position %d of %d", word_id, position, len(self._queue))

    def _announce_next(self) -> None:
        word_id = self.current_word()
        if word_id is not None and self.on_next_word:
            self.on_next_word(word_id)

    def _complete(self) -> None:
        self.state = SessionState.COMPLETE
        payload: list[Any]
        if self.mode is Mode.HISTORY:
            payload = list(self._results)
            correct = sum(1 for r in self._results if r.is_correct)
            logger.info("Review complete: %d/%d correct", correct, len(self._results))
        else:
            payload = list(self._mastered)
            logger.info("Session complete: %d words mastered", len(self._mastered))
        if self.on_complete:
            self.on_complete(payload)
