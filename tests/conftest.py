"""Test configuration."""
import os
import random

import pytest

# Keep tests off the real database file before any engine is created.
os.environ.setdefault("WORDMASTERY_DB_URL", "sqlite+aiosqlite:///:memory:")

from wordmastery.services.voice_session import Alternative, RecognitionResult


class OrderedRandom(random.Random):
    """Deterministic RNG: shuffles are no-ops and randint picks the low end."""

    def shuffle(self, x, *args, **kwargs):
        return None

    def randint(self, a, b):
        return a


class FakeTransport:
    """In-memory stand-in for a speech-recognition transport."""

    def __init__(self, fail_on_start=False, ends_on_start=0):
        self.on_result = None
        self.on_error = None
        self.on_end = None
        self.fail_on_start = fail_on_start
        # Number of starts that end immediately, like a no-speech timeout.
        self.ends_on_start = ends_on_start
        self.start_calls = 0
        self.abort_calls = 0
        self.stop_calls = 0
        self.active = False

    def start(self):
        if self.fail_on_start:
            raise RuntimeError("microphone busy")
        if self.active:
            raise RuntimeError("already started")
        self.start_calls += 1
        self.active = True
        if self.ends_on_start:
            self.ends_on_start -= 1
            self.end()

    def stop(self):
        self.stop_calls += 1
        self.active = False

    def abort(self):
        self.abort_calls += 1
        self.active = False

    # ---- helpers for tests ----

    def say(self, *transcripts, is_final=True):
        alternatives = [Alternative(t, 0.9) for t in transcripts]
        self.on_result(RecognitionResult(alternatives=alternatives, is_final=is_final))

    def error(self, kind):
        self.on_error(kind)

    def end(self):
        self.active = False
        self.on_end()


class ManualTimers:
    """Collects scheduled callbacks so tests decide when they run."""

    class Handle:
        def __init__(self, callback):
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.pending = []
        self.delays = []

    def __call__(self, delay, callback):
        handle = self.Handle(callback)
        self.pending.append(handle)
        self.delays.append(delay)
        return handle

    def run_all(self):
        pending, self.pending = self.pending, []
        for handle in pending:
            if not handle.cancelled:
                handle.callback()


@pytest.fixture
def ordered_rng() -> OrderedRandom:
    return OrderedRandom()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def make_transport():
    return FakeTransport
