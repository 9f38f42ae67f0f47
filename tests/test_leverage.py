"""Tests for leverage scoring and prioritisation."""
import math

import pytest

from wordmastery.services.leverage import (
    PrioritizedWord,
    WordStat,
    leverage_score,
    prioritize,
    prioritize_detailed,
)


@pytest.fixture
def stats() -> dict[str, WordStat]:
    return {
        "the": WordStat("the", book_count=40, total_occurrences=900),
        "dragon": WordStat("dragon", book_count=2, total_occurrences=150),
        "castle": WordStat("castle", book_count=5, total_occurrences=12),
        "knight": WordStat("knight", book_count=5, total_occurrences=12),
    }


def test_leverage_score_formula():
    assert leverage_score(3, 10) == round(3 * math.log(11) * 1000)
    assert leverage_score(0, 50) == 0
    assert WordStat("x", 2, 4).leverage_score == round(2 * math.log(5) * 1000)


def test_many_books_beats_one_frequent_book():
    assert leverage_score(5, 12) > leverage_score(1, 500)


@pytest.mark.parametrize("book_count", [1, 3, 10])
def test_more_occurrences_never_lowers_score(book_count):
    scores = [leverage_score(book_count, n) for n in range(0, 200)]

    assert scores == sorted(scores)


def test_orders_by_score_then_alphabetically(stats):
    ranked = prioritize({"dragon", "knight", "castle", "the"}, set(), stats)

    assert ranked == ["the", "castle", "knight", "dragon"]


def test_mastered_words_removed(stats):
    ranked = prioritize(["the", "dragon", "castle"], {"the", "castle"}, stats)

    assert ranked == ["dragon"]


def test_missing_stats_sort_last_alphabetically(stats):
    ranked = prioritize(["zebra", "dragon", "apple"], set(), stats)

    assert ranked == ["dragon", "apple", "zebra"]


def test_missing_stats_detailed_defaults(stats):
    detailed = prioritize_detailed(["apple"], set(), stats)

    assert detailed == [PrioritizedWord("apple", 0, 1, 1)]


def test_deterministic_regardless_of_input_order(stats):
    words = ["the", "castle", "knight", "dragon", "zebra", "apple"]
    reordered_stats = dict(reversed(list(stats.items())))

    first = prioritize(words, set(), stats)
    second = prioritize(list(reversed(words)), set(), reordered_stats)

    assert first == second


def test_words_are_cleaned(stats):
    ranked = prioritize([" The ", "DRAGON", "", "  ", "dragon"], ["The"], stats)

    assert ranked == ["dragon"]


def test_empty_book():
    assert prioritize([], [], {}) == []
