from __future__ import annotations

import logging
import random
import uuid
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterator

from ..config import Config
from .answers import AnswerSource
from .models import RoomState, RoundState, TimeoutState
from .room import Room
from .scheduler import Scheduler


logger = logging.getLogger(__name__)

SchedulerFactory = Callable[[RLock], Scheduler]


_lock = RLock()
_rooms: dict[str, Room] = {}
_room_locks: dict[str, RLock] = {}
_empty_checks: dict[str, int] = {}


def create_room(
    answer_source: AnswerSource,
    scheduler_factory: SchedulerFactory,
    config=Config,
    rng: random.Random | None = None,
) -> Room:
    with _lock:
        room_id = str(uuid.uuid4())
        while room_id in _rooms:
            room_id = str(uuid.uuid4())

        room_lock = RLock()
        room = Room(
            room_id,
            answer_source=answer_source,
            scheduler=scheduler_factory(room_lock),
            rng=rng,
            round_duration_sec=config.ROUND_DURATION_SEC,
            timeout_duration_sec=config.TIMEOUT_DURATION_SEC,
            max_users=config.MAX_USERS,
            canvas_size=(config.CANVAS_WIDTH, config.CANVAS_HEIGHT),
        )
        _rooms[room_id] = room
        _room_locks[room_id] = room_lock
        _empty_checks[room_id] = 0

    logger.info("Room %s created", room_id)
    return room


def get_room(room_id: str) -> Room | None:
    with _lock:
        return _rooms.get(room_id)


@contextmanager
def locked_room(room_id: str) -> Iterator[Room | None]:
    """Yield the room while holding its lock, or ``None`` if it is gone."""
    with _lock:
        room = _rooms.get(room_id)
        room_lock = _room_locks.get(room_id)

    if room is None or room_lock is None:
        yield None
        return

    with room_lock:
        # Deleted while we were waiting for the lock.
        with _lock:
            alive = _rooms.get(room_id) is room
        yield room if alive else None


def delete_room(room_id: str, only_if_empty: bool = False) -> bool:
    """Remove and destroy a room.

    With ``only_if_empty`` the room survives if someone joined it since it
    was last seen empty.
    """
    with _lock:
        room = _rooms.get(room_id)
        room_lock = _room_locks.get(room_id)

    if room is None or room_lock is None:
        return False

    with room_lock:
        with _lock:
            if _rooms.get(room_id) is not room:
                return False
            if only_if_empty and not room.is_empty:
                _empty_checks[room_id] = 0
                return False
            del _rooms[room_id]
            del _room_locks[room_id]
            _empty_checks.pop(room_id, None)
        room.destroy()
    logger.info("Room %s destroyed", room_id)
    return True


def list_rooms() -> list[Room]:
    with _lock:
        return list(_rooms.values())


def clear_rooms() -> None:
    for room in list_rooms():
        delete_room(room.id)


def sweep_empty_rooms(max_checks: int = Config.EMPTY_ROOM_MAX_CHECKS) -> list[str]:
    """Count consecutive empty checks per room and delete the stale ones.

    Returns the ids of the deleted rooms.
    """
    stale: list[str] = []
    with _lock:
        for room_id, room in _rooms.items():
            if not room.is_empty:
                _empty_checks[room_id] = 0
                continue
            count = _empty_checks.get(room_id, 0) + 1
            _empty_checks[room_id] = count
            if count >= max_checks:
                stale.append(room_id)

    return [room_id for room_id in stale if delete_room(room_id, only_if_empty=True)]


def empty_checks(room_id: str) -> int:
    with _lock:
        return _empty_checks.get(room_id, 0)


def state_to_dict(snapshot: RoomState, viewer_id: str | None = None) -> dict:
    """Serialize a room state snapshot for one viewer.

    The answer is only visible to the artist during a round and to everyone
    during the timeout.
    """
    if isinstance(snapshot, RoundState):
        is_artist = bool(viewer_id) and viewer_id == snapshot.artist_id
        return {
            "state": "round",
            "players": [p.to_dict() for p in snapshot.players],
            "artistId": snapshot.artist_id,
            "timer": snapshot.timer.to_dict() if snapshot.timer else None,
            "answer": snapshot.answer.to_dict() if is_artist and snapshot.answer else None,
        }
    if isinstance(snapshot, TimeoutState):
        return {
            "state": "timeout",
            "timer": snapshot.timer.to_dict() if snapshot.timer else None,
            "answer": snapshot.answer.to_dict() if snapshot.answer else None,
        }
    return {"state": "idle"}


def room_public_state(room: Room, viewer_id: str | None = None) -> dict:
    return {
        "id": room.id,
        "ownerId": room.owner_id,
        "users": [u.to_dict() for u in room.users],
        "players": [p.to_dict() for p in room.players],
        "roundNumber": room.round_number,
        "isFull": room.is_full,
        **state_to_dict(room.state_snapshot, viewer_id),
    }
