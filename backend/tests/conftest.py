import os
import random
import sys

import pytest

# Ensure the backend root (containing the `crocodile` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from crocodile.game import service
from crocodile.game.answers import AnswerSource
from crocodile.game.models import Answer, User
from crocodile.game.room import Room
from crocodile.game.scheduler import ScheduledCall, Scheduler
from crocodile.realtime import handlers


class ManualScheduler(Scheduler):
    """Virtual clock: nothing fires until the test calls ``advance``.

    With ``auto_resolve`` answer fetches complete immediately; otherwise they
    wait for ``resolve_pending``.
    """

    def __init__(self, start=1_700_000_000.0, auto_resolve=True):
        self.now = start
        self.auto_resolve = auto_resolve
        self._calls = []
        self._seq = 0
        self._pending = []

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        call = ScheduledCall()
        self._seq += 1
        self._calls.append((self.now + delay, self._seq, call, callback))
        return call

    def run_async(self, func, on_done):
        if self.auto_resolve:
            on_done(func())
        else:
            self._pending.append((func, on_done))

    @property
    def pending_fetches(self):
        return len(self._pending)

    def resolve_pending(self):
        pending, self._pending = self._pending, []
        for func, on_done in pending:
            on_done(func())

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [c for c in self._calls if c[2].pending and c[0] <= target]
            if not due:
                break
            when, _, call, callback = min(due, key=lambda c: (c[0], c[1]))
            self.now = max(self.now, when)
            call.done = True
            callback()
        self._calls = [c for c in self._calls if c[2].pending]
        self.now = target


class StubAnswerSource(AnswerSource):
    def __init__(self, answers=None):
        self.answers = list(answers) if answers is not None else None
        self.calls = 0

    def fetch_answer(self):
        self.calls += 1
        if self.answers is None:
            return Answer(label='Label X', poster_url='https://example.org/x.jpg', value='X')
        if not self.answers:
            return None
        return self.answers.pop(0)


class EventRecorder:
    EVENTS = (
        'user_joined',
        'user_left',
        'owner_changed',
        'draw_events_added',
        'state_changed',
        'players_changed',
    )

    def __init__(self, room):
        self.events = []
        for name in self.EVENTS:
            room.on(name, lambda payload, name=name: self.events.append((name, payload)))

    def named(self, name):
        return [payload for event, payload in self.events if event == name]

    def clear(self):
        self.events.clear()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def answer_source():
    return StubAnswerSource()


@pytest.fixture()
def make_room(scheduler, answer_source):
    def _make(user_ids=(), **kwargs):
        kwargs.setdefault('rng', random.Random(7))
        room = Room(
            'room-1',
            answer_source=kwargs.pop('answer_source', answer_source),
            scheduler=kwargs.pop('scheduler', scheduler),
            round_duration_sec=120,
            timeout_duration_sec=5,
            max_users=4,
            canvas_size=(20, 30),
            **kwargs,
        )
        for user_id in user_ids:
            room.join(User(id=user_id, login=user_id.lower()))
        return room

    return _make


@pytest.fixture()
def room(make_room):
    return make_room(['A', 'B', 'C'])


@pytest.fixture()
def recorder(room):
    return EventRecorder(room)


@pytest.fixture(autouse=True)
def clean_registry():
    yield
    service.clear_rooms()
    handlers.reset_sessions()
