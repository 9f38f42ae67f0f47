"""Keep speech recognition alive and match it against on-screen words.

A recognition *transport* is anything that behaves like the browser's
Web Speech object: ``start()``, ``stop()``, ``abort()`` plus
``on_result`` / ``on_error`` / ``on_end`` callback attributes.  The
transports stop by themselves after silence or errors, so the sessions
here re-arm them after a short delay until the caller says stop.

Two flavours:

* ``ContinuousVoiceSession`` – arcade games.  Several words are on
  screen at once; every utterance is checked against all of them.
* ``WordListener`` – flashcards.  One target word, final results only,
  every recogniser alternative is tried.

Errors of kind ``no-speech`` and ``aborted`` are routine and swallowed.
Anything else is reported through ``on_error`` followed by ``on_end``
and the session winds down so the caller can fall back to tap input.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence

from wordmastery.config import settings
from wordmastery.services.matcher import FuzzyMatcher, MatchVerdict, default_matcher, normalise

logger = logging.getLogger(__name__)

# Errors every recogniser produces in normal operation.
ROUTINE_ERRORS = frozenset({"no-speech", "aborted"})


@dataclass(frozen=True)
class Alternative:
    transcript: str
    confidence: float = 1.0


@dataclass(frozen=True)
class RecognitionResult:
    alternatives: list[Alternative] = field(default_factory=list)
    is_final: bool = False

    @property
    def best(self) -> Optional[Alternative]:
        return self.alternatives[0] if self.alternatives else None


class RecognitionTransport(Protocol):
    on_result: Optional[Callable[[RecognitionResult], None]]
    on_error: Optional[Callable[[str], None]]
    on_end: Optional[Callable[[], None]]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


@dataclass(frozen=True)
class WordMatch:
    word: str
    index: int
    transcript: str
    confidence: float


def _default_call_later(delay: float, callback: Callable[[], None]) -> Any:
    """Run ``callback`` after ``delay``; both handles offer ``cancel()``."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
    return loop.call_later(delay, callback)


class _ListeningSession(ABC):
    """Restart bookkeeping shared by both session types."""

    def __init__(
        self,
        transport: Optional[RecognitionTransport],
        on_error: Optional[Callable[[str], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        matcher: FuzzyMatcher = default_matcher,
        restart_delay: float = settings.restart_delay_seconds,
        call_later: Callable[[float, Callable[[], None]], Any] = _default_call_later,
    ):
        self.transport = transport
        self.matcher = matcher
        self.restart_delay = restart_delay
        self._user_on_error = on_error
        self._user_on_end = on_end
        self._call_later = call_later

        self._stopped = True
        self._listening = False
        self._starting = False
        self._ended_while_starting = False
        self._restart_handle: Any = None
        self._restart_pending = False

    @property
    def is_listening(self) -> bool:
        return not self._stopped and self._listening

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    # ---- Public ----

    def start(self):
        """Begin listening; returns ``self`` as the control handle."""
        if not self._stopped:
            return self

        if self.transport is None:
            logger.warning("Speech recognition unavailable – voice mode disabled")
            self._report_failure("Speech recognition not supported")
            return self

        self._stopped = False
        self.transport.on_result = self._handle_result
        self.transport.on_error = self._handle_error
        self.transport.on_end = self._handle_end
        if not self._start_stream():
            self._stopped = True
            self._report_failure("Failed to start recognition")
        return self

    def stop(self) -> None:
        """Stop for good.  No callbacks fire after this returns."""
        self._stopped = True
        self._listening = False
        self._cancel_restart()
        if self.transport is None:
            return
        try:
            self.transport.abort()
        except Exception as e:
            logger.debug("Ignoring error while stopping recognition: %s", e)

    # ---- Transport callbacks ----

    def _handle_result(self, result: RecognitionResult) -> None:
        if self._stopped:
            return
        self._on_result(result)

    def _handle_error(self, kind: str) -> None:
        if self._stopped:
            return
        if kind in ROUTINE_ERRORS:
            logger.debug("Recognition error %r swallowed", kind)
            return
        logger.warning("Recognition error: %s", kind)
        self.stop()
        self._report_failure(kind)

    def _handle_end(self) -> None:
        if self._stopped:
            return
        self._listening = False
        if self._starting:
            self._ended_while_starting = True
        self._schedule_restart()

    # ---- Hooks ----

    @abstractmethod
    def _on_result(self, result: RecognitionResult) -> None:
        """Judge a recogniser result against the session's targets."""

    # ---- Stream control ----

    def _start_stream(self) -> bool:
        if self._listening or self._starting:
            return True
        self._starting = True
        self._ended_while_starting = False
        try:
            self.transport.start()
        except Exception as e:
            logger.exception("Recognition transport failed to start: %s", e)
            return False
        finally:
            self._starting = False
        if self._ended_while_starting:
            # Ended inside start(); make sure a restart is still queued.
            logger.debug("Recognition ended while starting")
            self._schedule_restart()
            return True
        self._listening = True
        return True

    def _force_restart(self) -> None:
        """Abort and relisten so a stale partial transcript cannot match again."""
        self._listening = False
        try:
            self.transport.abort()
        except Exception as e:
            logger.debug("Ignoring error while aborting for restart: %s", e)
        self._schedule_restart()

    def _schedule_restart(self) -> None:
        if self._stopped or self._restart_pending:
            return
        self._restart_pending = True
        logger.debug("Restarting recognition in %.2fs", self.restart_delay)
        self._restart_handle = self._call_later(self.restart_delay, self._restart)

    def _restart(self) -> None:
        self._restart_pending = False
        self._restart_handle = None
        if self._stopped:
            return
        if not self._start_stream():
            self.stop()
            self._report_failure("Failed to restart recognition")

    def _cancel_restart(self) -> None:
        if self._restart_handle is not None:
            cancel = getattr(self._restart_handle, "cancel", None)
            if cancel:
                cancel()
        self._restart_handle = None
        self._restart_pending = False

    def _report_failure(self, message: str) -> None:
        if self._user_on_error:
            self._user_on_error(message)
        if self._user_on_end:
            self._user_on_end()


class ContinuousVoiceSession(_ListeningSession):
    """Match a live transcript against every word currently on screen.

    If ``on_all_matches`` is given it receives every target hit by an
    utterance plus a ``mark_matched(index)`` callback, and decides which
    of them to consume (e.g. the word closest to the lava).  Otherwise
    the first hit in ``target_words`` order wins and goes to ``on_match``.
    """

    def __init__(
        self,
        transport: Optional[RecognitionTransport],
        target_words: Sequence[str],
        on_match: Callable[[WordMatch], None],
        on_interim: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        on_all_matches: Optional[
            Callable[[list[WordMatch], Callable[[int], None]], None]
        ] = None,
        **kwargs: Any,
    ):
        super().__init__(transport, on_error=on_error, on_end=on_end, **kwargs)
        self.on_match = on_match
        self.on_interim = on_interim
        self.on_all_matches = on_all_matches
        self._targets: list[str] = list(target_words)
        self._normalised_targets: list[str] = [normalise(w) for w in self._targets]
        self._matched: set[int] = set()

    @property
    def target_words(self) -> list[str]:
        return list(self._targets)

    @property
    def matched_indices(self) -> frozenset[int]:
        return frozenset(self._matched)

    def update_target_words(self, words: Sequence[str]) -> None:
        """Swap in a new on-screen word set and forget earlier matches."""
        self._targets = list(words)
        self._normalised_targets = [normalise(w) for w in self._targets]
        self._matched = set()
        logger.debug("Target words updated: %d words", len(self._targets))

    def _on_result(self, result: RecognitionResult) -> None:
        best = result.best
        if best is None:
            return
        if self.on_interim:
            self.on_interim(best.transcript)

        spoken = normalise(best.transcript)
        matches = [
            WordMatch(word=word, index=i, transcript=best.transcript, confidence=best.confidence)
            for i, word in enumerate(self._targets)
            if i not in self._matched
            and self.matcher.match_normalised(spoken, self._normalised_targets[i])
        ]
        if not matches:
            return

        logger.debug(
            "Utterance %r matched %d target(s): %s",
            best.transcript,
            len(matches),
            [m.word for m in matches],
        )
        if self.on_all_matches:
            self.on_all_matches(matches, self._mark_matched)
        else:
            first = matches[0]
            self._matched.add(first.index)
            self.on_match(first)

        if not self._stopped:
            self._force_restart()

    def _mark_matched(self, index: int) -> None:
        if 0 <= index < len(self._targets):
            self._matched.add(index)


class WordListener(_ListeningSession):
    """Listen for a single flashcard word, judging final results only."""

    def __init__(
        self,
        transport: Optional[RecognitionTransport],
        target_word: str,
        on_match: Callable[[MatchVerdict], None],
        on_no_match: Optional[Callable[[MatchVerdict], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        **kwargs: Any,
    ):
        super().__init__(transport, on_error=on_error, on_end=on_end, **kwargs)
        self.target_word = target_word
        self.on_match = on_match
        self.on_no_match = on_no_match

    def update_target_word(self, word: str) -> None:
        self.target_word = word

    def _on_result(self, result: RecognitionResult) -> None:
        if not result.is_final or not result.alternatives:
            return

        for alternative in result.alternatives:
            if self.matcher.is_match(alternative.transcript, self.target_word):
                self.on_match(
                    MatchVerdict(
                        transcript=alternative.transcript,
                        confidence=alternative.confidence,
                        is_match=True,
                    )
                )
                return

        best = result.alternatives[0]
        if self.on_no_match:
            self.on_no_match(
                MatchVerdict(transcript=best.transcript, confidence=best.confidence, is_match=False)
            )


def start_continuous_listening(
    transport: Optional[RecognitionTransport],
    target_words: Sequence[str],
    on_match: Callable[[WordMatch], None],
    on_interim: Optional[Callable[[str], None]] = None,
    on_error: Optional[Callable[[str], None]] = None,
    on_end: Optional[Callable[[], None]] = None,
    on_all_matches: Optional[Callable[[list[WordMatch], Callable[[int], None]], None]] = None,
    **kwargs: Any,
) -> ContinuousVoiceSession:
    """Create and start a ``ContinuousVoiceSession``.

    The returned session is the handle: call ``stop()`` or
    ``update_target_words()`` on it.  A ``None`` transport means voice
    input is unavailable; ``on_error`` and ``on_end`` fire right away
    and the handle does nothing.
    """
    session = ContinuousVoiceSession(
        transport,
        target_words,
        on_match,
        on_interim=on_interim,
        on_error=on_error,
        on_end=on_end,
        on_all_matches=on_all_matches,
        **kwargs,
    )
    return session.start()


def listen_for_word(
    transport: Optional[RecognitionTransport],
    target_word: str,
    on_match: Callable[[MatchVerdict], None],
    on_no_match: Optional[Callable[[MatchVerdict], None]] = None,
    on_error: Optional[Callable[[str], None]] = None,
    on_end: Optional[Callable[[], None]] = None,
    **kwargs: Any,
) -> WordListener:
    listener = WordListener(
        transport,
        target_word,
        on_match,
        on_no_match=on_no_match,
        on_error=on_error,
        on_end=on_end,
        **kwargs,
    )
    return listener.start()
