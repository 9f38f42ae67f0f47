"""Tests for the session scheduler."""
import random

import pytest

from wordmastery.services.scheduler import (
    AnswerResult,
    Mode,
    SchedulerError,
    SessionScheduler,
    SessionState,
)


@pytest.fixture
def completed() -> list:
    return []


@pytest.fixture
def scheduler(ordered_rng, completed) -> SessionScheduler:
    return SessionScheduler(rng=ordered_rng, on_complete=completed.append)


def test_all_correct_masters_in_order(scheduler, completed):
    """cat, dog, sun with threshold 2 finish after exactly six correct answers."""
    scheduler.initialize(["cat", "dog", "sun"], mastery_threshold=2)

    seen = []
    for _ in range(6):
        seen.append(scheduler.current_word())
        scheduler.submit_answer(True)

    assert seen == ["cat", "dog", "sun", "cat", "dog", "sun"]
    assert scheduler.state is SessionState.COMPLETE
    assert completed == [["cat", "dog", "sun"]]
    assert scheduler.mastered == ["cat", "dog", "sun"]


def test_miss_is_retried_after_other_word(scheduler, completed):
    """cat✘ dog✔ cat✔ with threshold 1 completes with dog mastered first."""
    scheduler.initialize(["cat", "dog"], mastery_threshold=1)

    assert scheduler.current_word() == "cat"
    outcome = scheduler.submit_answer(False)
    assert not outcome.mastered
    assert scheduler.queue == ("dog", "cat")

    scheduler.submit_answer(True)
    outcome = scheduler.submit_answer(True)

    assert outcome.complete
    assert completed == [["dog", "cat"]]
    assert scheduler.progress().total_attempts == 3


def test_threshold_one_miss_does_not_master(scheduler):
    scheduler.initialize(["cat"], mastery_threshold=1)

    outcome = scheduler.submit_answer(False)

    assert not outcome.mastered
    assert scheduler.mastered == []
    assert scheduler.state is SessionState.ACTIVE
    # Single-word deck: the queue refills with the unmastered word.
    assert scheduler.current_word() == "cat"


def test_empty_deck_completes_immediately(scheduler, completed):
    scheduler.initialize([], mastery_threshold=3)

    assert scheduler.current_word() is None
    assert scheduler.state is SessionState.COMPLETE
    assert completed == [[]]


def test_empty_history_deck_completes_with_no_results(scheduler, completed):
    scheduler.initialize([], mode=Mode.HISTORY)

    assert scheduler.is_complete
    assert completed == [[]]


def test_submit_before_initialize_raises(scheduler):
    with pytest.raises(SchedulerError):
        scheduler.submit_answer(True)


def test_submit_after_complete_raises(scheduler):
    scheduler.initialize(["cat"], mastery_threshold=1)
    scheduler.submit_answer(True)

    with pytest.raises(SchedulerError):
        scheduler.submit_answer(True)


def test_invalid_threshold_rejected(scheduler):
    with pytest.raises(ValueError):
        scheduler.initialize(["cat"], mastery_threshold=0)


def test_reinitialize_resets_progress(scheduler):
    scheduler.initialize(["cat", "dog"], mastery_threshold=3)
    scheduler.submit_answer(True)
    scheduler.submit_answer(False)

    scheduler.initialize(["cat", "dog"], mastery_threshold=3)

    assert scheduler.word_progress("cat").session_correct_count == 0
    assert scheduler.word_progress("cat").total_attempts == 0
    assert scheduler.word_progress("dog").total_attempts == 0
    assert scheduler.mastered == []
    assert scheduler.queue == ("cat", "dog")


def test_duplicate_ids_collapsed(scheduler):
    scheduler.initialize(["cat", "dog", "cat"], mastery_threshold=1)

    assert scheduler.queue == ("cat", "dog")
    assert scheduler.progress().total_words == 2


def test_mapping_input_keeps_text(scheduler):
    scheduler.initialize({"w1": "elephant", "w2": "giraffe"}, mastery_threshold=1)

    assert scheduler.current_word() == "w1"
    assert scheduler.current_text() == "elephant"


def test_reinsertion_window(ordered_rng):
    """A missed word lands at index 2 (3rd position) when the queue is long enough."""
    scheduler = SessionScheduler(rng=ordered_rng)
    scheduler.initialize(["a", "b", "c", "d", "e", "f"], mastery_threshold=2)

    scheduler.submit_answer(False)

    assert scheduler.queue == ("b", "c", "a", "d", "e", "f")


@pytest.mark.parametrize("seed", range(25))
def test_reinsertion_stays_within_third_to_fifth(seed):
    scheduler = SessionScheduler(rng=random.Random(seed))
    scheduler.initialize([f"w{i}" for i in range(8)], mastery_threshold=3)

    missed = scheduler.current_word()
    scheduler.submit_answer(False)

    assert 2 <= scheduler.queue.index(missed) <= 4


@pytest.mark.parametrize("remaining", [1, 2])
def test_reinsertion_clamped_for_short_queue(remaining):
    """With fewer than three cards left the missed word goes to the back."""
    words = [f"w{i}" for i in range(remaining + 1)]
    for seed in range(10):
        scheduler = SessionScheduler(rng=random.Random(seed))
        scheduler.initialize(words, mastery_threshold=2)
        missed = scheduler.current_word()

        scheduler.submit_answer(False)

        assert scheduler.queue[-1] == missed
        assert len(scheduler.queue) == remaining + 1


@pytest.mark.parametrize("threshold", [1, 2, 5])
@pytest.mark.parametrize("count", [1, 3, 7])
def test_forward_progress_all_correct(threshold, count):
    scheduler = SessionScheduler(rng=random.Random(threshold * 100 + count))
    scheduler.initialize([f"w{i}" for i in range(count)], mastery_threshold=threshold)

    calls = 0
    while not scheduler.is_complete:
        scheduler.submit_answer(True)
        calls += 1
        assert calls <= count * threshold

    assert sorted(scheduler.mastered) == sorted(f"w{i}" for i in range(count))


def test_no_premature_mastery_with_mixed_answers():
    rng = random.Random(7)
    verdicts = random.Random(42)
    mastered_at = {}

    scheduler = SessionScheduler(rng=rng)
    scheduler.on_word_mastered = lambda w: mastered_at.setdefault(
        w, scheduler.word_progress(w).session_correct_count
    )
    scheduler.initialize([f"w{i}" for i in range(5)], mastery_threshold=3)

    for _ in range(500):
        if scheduler.is_complete:
            break
        scheduler.submit_answer(verdicts.random() < 0.6)

    assert scheduler.is_complete
    assert all(count >= 3 for count in mastered_at.values())
    for word_id in scheduler.mastered:
        progress = scheduler.word_progress(word_id)
        assert progress.session_correct_count <= progress.total_attempts


def test_mastered_word_never_requeued():
    scheduler = SessionScheduler(rng=random.Random(3))
    scheduler.initialize(["a", "b", "c"], mastery_threshold=1)

    first = scheduler.current_word()
    scheduler.submit_answer(True)
    for _ in range(4):
        if scheduler.is_complete:
            break
        assert first not in scheduler.queue
        scheduler.submit_answer(False)


def test_history_mode_shows_each_word_once(ordered_rng, completed):
    results = []
    scheduler = SessionScheduler(
        rng=ordered_rng,
        on_complete=completed.append,
        on_result=lambda w, ok: results.append((w, ok)),
    )
    scheduler.initialize(["cat", "dog", "sun"], mastery_threshold=9, mode=Mode.HISTORY)

    assert scheduler.mastery_threshold == 1
    scheduler.submit_answer(True)
    scheduler.submit_answer(False)
    outcome = scheduler.submit_answer(True)

    assert outcome.complete
    assert results == [("cat", True), ("dog", False), ("sun", True)]
    assert completed == [[
        AnswerResult("cat", True),
        AnswerResult("dog", False),
        AnswerResult("sun", True),
    ]]
    assert scheduler.mastered == []


def test_history_mode_accepts_string_mode(ordered_rng):
    scheduler = SessionScheduler(rng=ordered_rng)
    scheduler.initialize(["cat", "dog"], mode="history")

    assert scheduler.mode is Mode.HISTORY


def test_next_word_events(ordered_rng):
    announced = []
    scheduler = SessionScheduler(rng=ordered_rng, on_next_word=announced.append)
    scheduler.initialize(["cat", "dog"], mastery_threshold=1)

    scheduler.submit_answer(True)
    scheduler.submit_answer(True)

    assert announced == ["cat", "dog"]


def test_progress_snapshot(ordered_rng):
    scheduler = SessionScheduler(rng=ordered_rng)
    scheduler.initialize(["cat", "dog"], mastery_threshold=1)

    scheduler.submit_answer(False)
    scheduler.submit_answer(True)
    progress = scheduler.progress()

    assert progress.completed == 1
    assert progress.total_words == 2
    assert progress.total_correct == 1
    assert progress.total_attempts == 2
    assert progress.percent == pytest.approx(50.0)


def test_sessions_do_not_share_rng():
    a = SessionScheduler()
    b = SessionScheduler()

    assert a.rng is not b.rng
