from __future__ import annotations

from flask import Blueprint, jsonify

from ..game import service

bp = Blueprint("rooms", __name__)


@bp.get("/rooms")
def list_rooms():
    payload = []
    for room in service.list_rooms():
        with service.locked_room(room.id) as locked:
            if locked is not None:
                payload.append(service.room_public_state(locked))
    return jsonify({"rooms": payload})


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    with service.locked_room(room_id) as room:
        if room is None:
            return jsonify({"error": "room_not_found"}), 404
        return jsonify(service.room_public_state(room))
