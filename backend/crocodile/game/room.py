from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Any, Callable, Literal

from ..config import Config
from .answers import AnswerSource
from .canvas import Canvas
from .emitter import Emitter
from .models import (
    Answer,
    DrawEvent,
    DrawEventsAdded,
    FillEvent,
    IdleState,
    Player,
    RoomState,
    RoomStateName,
    RoundState,
    TimeoutState,
    TimerState,
    User,
)
from .scheduler import Scheduler
from .timer import Timer


logger = logging.getLogger(__name__)


RoomEvent = Literal[
    "user_joined",
    "user_left",
    "owner_changed",
    "draw_events_added",
    "state_changed",
    "players_changed",
]


class Room:
    """One game session: users, the optional running game and its canvas.

    Callers must serialize every call on a given room, including timer
    expiries and answer deliveries coming through the scheduler. Caller-side
    preconditions (capacity, ownership, minimum users) are not re-checked here.
    """

    def __init__(
        self,
        room_id: str,
        answer_source: AnswerSource,
        scheduler: Scheduler,
        rng: random.Random | None = None,
        round_duration_sec: float = Config.ROUND_DURATION_SEC,
        timeout_duration_sec: float = Config.TIMEOUT_DURATION_SEC,
        max_users: int = Config.MAX_USERS,
        canvas_size: tuple[int, int] = (Config.CANVAS_WIDTH, Config.CANVAS_HEIGHT),
    ) -> None:
        self._id = room_id
        self._answer_source = answer_source
        self._scheduler = scheduler
        self._rng = rng or random.Random()
        self.round_duration_ms = int(round_duration_sec * 1000)
        self.timeout_duration_ms = int(timeout_duration_sec * 1000)
        self.max_users = max_users

        self._users: dict[str, User] = {}
        self._owner_id = ""
        self._state: RoomStateName = "idle"
        self._answer: Answer | None = None
        self._players_queue: list[Player] = []
        self._round_number = 0
        # Bumped whenever an in-flight answer fetch must be ignored.
        self._fetch_generation = 0
        self._fetch_pending = False

        self._emitter: Emitter[RoomEvent] = Emitter()
        self._timer = Timer(scheduler)
        self._canvas = Canvas(*canvas_size)

    # Read accessors

    @property
    def id(self) -> str:
        return self._id

    @property
    def users(self) -> list[User]:
        return [User(id=u.id, login=u.login) for u in self._users.values()]

    @property
    def players(self) -> list[Player]:
        return self._players_queue

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def state(self) -> RoomStateName:
        return self._state

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    def artist(self) -> Player | None:
        if 0 < self._round_number <= len(self._players_queue):
            return self._players_queue[self._round_number - 1]
        return None

    @property
    def timer_state(self) -> TimerState | None:
        return self._timer.state

    @property
    def answer(self) -> Answer | None:
        return self._answer

    @property
    def canvas_image_data(self) -> dict:
        return self._canvas.image_data()

    @property
    def is_running(self) -> bool:
        return self._state in ("round", "timeout")

    @property
    def is_starting(self) -> bool:
        return self._fetch_pending

    @property
    def is_empty(self) -> bool:
        return not self._users

    @property
    def is_full(self) -> bool:
        return len(self._users) >= self.max_users

    @property
    def state_snapshot(self) -> RoomState:
        if self._state == "round":
            artist = self.artist
            return RoundState(
                players=[replace(p) for p in self._players_queue],
                artist_id=artist.id if artist else "",
                timer=self._timer.state,
                answer=self._answer,
            )
        if self._state == "timeout":
            return TimeoutState(timer=self._timer.state, answer=self._answer)
        return IdleState()

    def has_user(self, user_id: str) -> bool:
        return user_id in self._users

    def has_player(self, player_id: str) -> bool:
        return any(p.id == player_id for p in self._players_queue)

    def get_player(self, player_id: str) -> Player | None:
        return next((p for p in self._players_queue if p.id == player_id), None)

    def on(self, event: RoomEvent, handler: Callable[[Any], Any]) -> Callable[[], None]:
        return self._emitter.subscribe(event, handler)

    # Membership

    def join(self, user: User) -> None:
        self._users[user.id] = user
        self._emitter.emit("user_joined", user)

        if not self._owner_id:
            self._set_owner(user.id)

    def leave(self, user_id: str) -> bool:
        user = self._users.pop(user_id, None)
        if user is None:
            return False

        self._emitter.emit("user_left", user)

        if user_id == self._owner_id:
            remaining = list(self._users)
            self._set_owner(self._rng.choice(remaining) if remaining else "")

        return True

    def _set_owner(self, owner_id: str) -> None:
        self._owner_id = owner_id
        self._emitter.emit("owner_changed", owner_id)

    # Drawing

    def draw(self, events: list[DrawEvent], artist_id: str) -> bool:
        if not self.is_running or not self.has_player(artist_id):
            return False
        self._apply_draw(events, artist_id)
        return True

    def _apply_draw(self, events: list[DrawEvent], artist_id: str) -> None:
        self._canvas.apply(events)
        self._emitter.emit("draw_events_added", DrawEventsAdded(events=list(events), artist_id=artist_id))

    def _clear_canvas(self) -> None:
        self._apply_draw([FillEvent(color="white")], "")

    # Game lifecycle

    def start(self) -> bool:
        if self.is_running or self._fetch_pending:
            return False
        logger.info("Room %s: game starting with %d users", self._id, len(self._users))
        self._begin_round()
        return True

    def stop(self) -> bool:
        if not self.is_running and not self._fetch_pending:
            return False
        logger.info("Room %s: game stopped at round %d", self._id, self._round_number)
        self._to_idle()
        return True

    def destroy(self) -> None:
        self._timer.stop()
        self._discard_pending_fetch()
        self._emitter.unsubscribe_all()

    def _begin_round(self) -> None:
        self._timer.stop()

        if self._round_number == 0:
            players = [Player(id=u.id, login=u.login, points=0) for u in self._users.values()]
            self._rng.shuffle(players)
            self._players_queue = players

        for player in self._players_queue:
            player.has_right_answer = False

        self._round_number += 1
        self._answer = None
        self._clear_canvas()

        self._fetch_generation += 1
        generation = self._fetch_generation
        self._fetch_pending = True
        self._scheduler.run_async(
            self._answer_source.fetch_answer,
            lambda answer: self._on_answer_fetched(generation, answer),
        )

    def _on_answer_fetched(self, generation: int, answer: Answer | None) -> None:
        if generation != self._fetch_generation:
            logger.debug("Room %s: discarding stale answer fetch %d", self._id, generation)
            return
        self._fetch_pending = False

        if answer is None:
            logger.warning("Room %s: no answer available, returning to idle", self._id)
            self._to_idle()
            return

        self._answer = answer
        self._state = "round"
        self._timer.start(self.round_duration_ms, self._to_timeout)
        logger.info("Room %s: round %d of %d", self._id, self._round_number, len(self._players_queue))
        self._emit_state()

    def _to_timeout(self) -> None:
        self._timer.stop()
        self._state = "timeout"
        self._timer.start(self.timeout_duration_ms, self._after_timeout)
        logger.info("Room %s: round %d over", self._id, self._round_number)
        self._emit_state()

    def _after_timeout(self) -> None:
        if self._round_number >= len(self._players_queue):
            logger.info("Room %s: game finished", self._id)
            self._to_idle()
        else:
            self._begin_round()

    def _to_idle(self) -> None:
        self._timer.stop()
        self._discard_pending_fetch()
        self._answer = None
        self._players_queue = []
        self._round_number = 0
        self._clear_canvas()
        self._state = "idle"
        self._emit_state()

    def _discard_pending_fetch(self) -> None:
        if self._fetch_pending:
            self._fetch_generation += 1
            self._fetch_pending = False

    def _emit_state(self) -> None:
        self._emitter.emit("state_changed", self.state_snapshot)

    # Guessing

    def apply_answer(self, guess: str, player_id: str) -> bool:
        if self._state != "round" or self._answer is None:
            return False
        if guess != self._answer.value:
            return False

        player = self.get_player(player_id)
        artist = self.artist
        if player is None or player.has_right_answer:
            return False
        if artist is not None and artist.id == player.id:
            return False

        player.has_right_answer = True
        player.points += 1
        self._emitter.emit("players_changed", [replace(p) for p in self._players_queue])

        guessers = [p for p in self._players_queue if artist is None or p.id != artist.id]
        if all(p.has_right_answer for p in guessers):
            self._to_timeout()

        return True
