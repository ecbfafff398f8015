from __future__ import annotations

import logging
import uuid
from threading import RLock
from typing import Any

from flask import request
from flask_socketio import SocketIO, join_room, leave_room

from ..config import Config
from ..game import service
from ..game.answers import AnswerSource
from ..game.models import (
    DrawEventsAdded,
    ImageEvent,
    InvalidDrawEvent,
    RoundState,
    User,
    draw_event_to_dict,
    parse_draw_events,
)
from ..game.room import Room
from . import events as ev
from .scheduler import SocketIOScheduler


logger = logging.getLogger(__name__)


_sessions_lock = RLock()
# socket id -> (room id, user id)
_sessions: dict[str, tuple[str, str]] = {}
# (room id, user id) -> socket id
_user_sids: dict[tuple[str, str], str] = {}
_sweeper_started = False


def _validate_login(login: str) -> bool:
    n = (login or "").strip()
    if not n:
        return False
    if len(n) > 32:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def _bind_session(sid: str, room_id: str, user_id: str) -> None:
    with _sessions_lock:
        _sessions[sid] = (room_id, user_id)
        _user_sids[(room_id, user_id)] = sid


def _unbind_session(sid: str) -> tuple[str, str] | None:
    with _sessions_lock:
        binding = _sessions.pop(sid, None)
        if binding is not None and _user_sids.get(binding) == sid:
            del _user_sids[binding]
        return binding


def _session(sid: str) -> tuple[str, str] | None:
    with _sessions_lock:
        return _sessions.get(sid)


def _sid_of(room_id: str, user_id: str) -> str | None:
    with _sessions_lock:
        return _user_sids.get((room_id, user_id))


def reset_sessions() -> None:
    with _sessions_lock:
        _sessions.clear()
        _user_sids.clear()


def register_socketio_handlers(
    socketio: SocketIO,
    answer_source: AnswerSource,
    scheduler_factory: service.SchedulerFactory | None = None,
    config=Config,
) -> None:
    if scheduler_factory is None:
        def scheduler_factory(lock: RLock) -> SocketIOScheduler:
            return SocketIOScheduler(socketio, lock)

    def _broadcast(event: str, payload: dict, room_id: str, skip_sid: str | None = None) -> None:
        socketio.emit(event, payload, to=room_id, namespace=ev.NAMESPACE, skip_sid=skip_sid)

    def _wire_room(room: Room) -> None:
        """Subscribe the broadcasters once per room."""
        room_id = room.id

        def on_users_changed(_user: User) -> None:
            _broadcast(ev.ROOM_USERS, {"users": [u.to_dict() for u in room.users]}, room_id)

        def on_owner_changed(owner_id: str) -> None:
            _broadcast(ev.ROOM_OWNER, {"ownerId": owner_id}, room_id)

        def on_draw_events_added(added: DrawEventsAdded) -> None:
            payload = {
                "events": [draw_event_to_dict(e) for e in added.events],
                "artistId": added.artist_id,
            }
            # The author already has these strokes locally.
            author_sid = _sid_of(room_id, added.artist_id) if added.artist_id else None
            _broadcast(ev.DRAW_EVENTS, payload, room_id, skip_sid=author_sid)

        def on_state_changed(snapshot) -> None:
            artist_sid = None
            if isinstance(snapshot, RoundState) and snapshot.artist_id:
                artist_sid = _sid_of(room_id, snapshot.artist_id)

            _broadcast(ev.GAME_STATE, service.state_to_dict(snapshot), room_id, skip_sid=artist_sid)
            if artist_sid:
                socketio.emit(
                    ev.GAME_STATE,
                    service.state_to_dict(snapshot, viewer_id=snapshot.artist_id),
                    to=artist_sid,
                    namespace=ev.NAMESPACE,
                )

        def on_players_changed(players) -> None:
            _broadcast(ev.GAME_PLAYERS, {"players": [p.to_dict() for p in players]}, room_id)

        room.on("user_joined", on_users_changed)
        room.on("user_left", on_users_changed)
        room.on("owner_changed", on_owner_changed)
        room.on("draw_events_added", on_draw_events_added)
        room.on("state_changed", on_state_changed)
        room.on("players_changed", on_players_changed)

    def _leave_current_room(sid: str) -> bool:
        binding = _unbind_session(sid)
        if binding is None:
            return False

        room_id, user_id = binding
        with service.locked_room(room_id) as room:
            if room is not None:
                room.leave(user_id)
        logger.info("User %s left room %s", user_id, room_id)
        return True

    def _ensure_sweeper() -> None:
        global _sweeper_started
        if _sweeper_started:
            return
        _sweeper_started = True

        def _runner() -> None:
            while True:
                socketio.sleep(config.EMPTY_ROOM_CHECK_INTERVAL_SEC)
                deleted = service.sweep_empty_rooms(config.EMPTY_ROOM_MAX_CHECKS)
                if deleted:
                    logger.info("Reclaimed %d empty room(s)", len(deleted))

        socketio.start_background_task(_runner)

    @socketio.on(ev.ROOM_CREATE, namespace=ev.NAMESPACE)
    def room_create(data=None):
        if _session(request.sid) is not None:
            return ev.error(ev.ALREADY_IN_ROOM)

        room = service.create_room(answer_source, scheduler_factory, config=config)
        _wire_room(room)
        return ev.ok(roomId=room.id)

    @socketio.on(ev.ROOM_JOIN, namespace=ev.NAMESPACE)
    def room_join(data):
        payload = data if isinstance(data, dict) else {}
        room_id = str(payload.get("roomId", "")).strip()
        user_id = str(payload.get("userId") or "").strip()
        login = str(payload.get("login", "")).strip()

        if not room_id or not _validate_login(login):
            return ev.error(ev.INVALID_PAYLOAD)

        if _session(request.sid) is not None:
            return ev.error(ev.ALREADY_IN_ROOM)

        with service.locked_room(room_id) as room:
            if room is None:
                return ev.error(ev.ROOM_NOT_FOUND)
            if room.is_full:
                return ev.error(ev.ROOM_FULL)
            if user_id and room.has_user(user_id):
                return ev.error(ev.USER_EXISTS)

            user_id = user_id or str(uuid.uuid4())
            _bind_session(request.sid, room_id, user_id)
            join_room(room_id)
            room.join(User(id=user_id, login=login))

            # Catch the newcomer up with one snapshot of the canvas.
            image = room.canvas_image_data
            snapshot = ImageEvent(data=image["data"], x=0, y=0, width=image["width"], height=image["height"])
            socketio.emit(
                ev.DRAW_EVENTS,
                {"events": [draw_event_to_dict(snapshot)], "artistId": ""},
                to=request.sid,
                namespace=ev.NAMESPACE,
            )

            logger.info("User %s (%s) joined room %s", user_id, login, room_id)
            return ev.ok(userId=user_id, **service.room_public_state(room, viewer_id=user_id))

    @socketio.on(ev.ROOM_LEAVE, namespace=ev.NAMESPACE)
    def room_leave(data=None):
        binding = _session(request.sid)
        if binding is None:
            return ev.error(ev.NOT_IN_ROOM)

        leave_room(binding[0])
        _leave_current_room(request.sid)
        return ev.ok()

    @socketio.on(ev.GAME_START, namespace=ev.NAMESPACE)
    def game_start(data=None):
        binding = _session(request.sid)
        if binding is None:
            return ev.error(ev.NOT_IN_ROOM)

        room_id, user_id = binding
        with service.locked_room(room_id) as room:
            if room is None:
                return ev.error(ev.ROOM_NOT_FOUND)
            if user_id != room.owner_id:
                return ev.error(ev.ONLY_OWNER)
            if len(room.users) < config.MIN_USERS_TO_START:
                return ev.error(ev.NOT_ENOUGH_USERS)
            if room.is_running or room.is_starting:
                return ev.error(ev.ALREADY_RUNNING)

            room.start()
            return ev.ok()

    @socketio.on(ev.GAME_STOP, namespace=ev.NAMESPACE)
    def game_stop(data=None):
        binding = _session(request.sid)
        if binding is None:
            return ev.error(ev.NOT_IN_ROOM)

        room_id, user_id = binding
        with service.locked_room(room_id) as room:
            if room is None:
                return ev.error(ev.ROOM_NOT_FOUND)
            if user_id != room.owner_id:
                return ev.error(ev.ONLY_OWNER)
            if not room.is_running and not room.is_starting:
                return ev.error(ev.NOT_RUNNING)

            room.stop()
            return ev.ok()

    @socketio.on(ev.DRAW_EVENTS, namespace=ev.NAMESPACE)
    def draw_events(data):
        binding = _session(request.sid)
        if binding is None:
            return ev.error(ev.NOT_IN_ROOM)

        payload = data if isinstance(data, dict) else {}
        try:
            parsed = parse_draw_events(payload.get("events"))
        except InvalidDrawEvent as exc:
            logger.debug("Rejected draw events from %s: %s", request.sid, exc)
            return ev.error(ev.INVALID_PAYLOAD)

        room_id, user_id = binding
        with service.locked_room(room_id) as room:
            if room is None:
                return ev.error(ev.ROOM_NOT_FOUND)
            if not room.is_running:
                return ev.error(ev.NOT_RUNNING)
            artist = room.artist
            if artist is None or artist.id != user_id:
                return ev.error(ev.NOT_ARTIST)

            room.draw(parsed, user_id)
            return ev.ok()

    @socketio.on(ev.GAME_ANSWER, namespace=ev.NAMESPACE)
    def game_answer(data):
        binding = _session(request.sid)
        if binding is None:
            return ev.error(ev.NOT_IN_ROOM)

        payload = data if isinstance(data, dict) else {}
        text: Any = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            return ev.error(ev.INVALID_PAYLOAD)

        room_id, user_id = binding
        with service.locked_room(room_id) as room:
            if room is None:
                return ev.error(ev.ROOM_NOT_FOUND)
            if not room.is_running:
                return ev.error(ev.NOT_RUNNING)
            if not room.has_player(user_id):
                return ev.error(ev.NOT_PLAYER)
            artist = room.artist
            if artist is not None and artist.id == user_id:
                return ev.error(ev.NOT_ARTIST)

            return ev.ok(correct=room.apply_answer(text.strip(), user_id))

    @socketio.on("disconnect", namespace=ev.NAMESPACE)
    def on_disconnect(*args):
        _leave_current_room(request.sid)

    if not config.TESTING:
        _ensure_sweeper()
