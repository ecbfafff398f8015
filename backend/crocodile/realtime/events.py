NAMESPACE = "/crocodile"

# client -> server
ROOM_CREATE = "room:create"
ROOM_JOIN = "room:join"
ROOM_LEAVE = "room:leave"
GAME_START = "game:start"
GAME_STOP = "game:stop"
GAME_ANSWER = "game:answer"
DRAW_EVENTS = "draw:events"

# server -> client
ROOM_USERS = "room:users"
ROOM_OWNER = "room:owner"
GAME_STATE = "game:state"
GAME_PLAYERS = "game:players"
# DRAW_EVENTS is relayed in both directions.

# ack error codes
INVALID_PAYLOAD = "invalid_payload"
ROOM_NOT_FOUND = "room_not_found"
ROOM_FULL = "room_full"
USER_EXISTS = "user_exists"
ALREADY_IN_ROOM = "already_in_room"
NOT_IN_ROOM = "not_in_room"
ONLY_OWNER = "only_owner"
NOT_ENOUGH_USERS = "not_enough_users"
ALREADY_RUNNING = "already_running"
NOT_RUNNING = "not_running"
NOT_ARTIST = "not_artist"
NOT_PLAYER = "not_player"


def ok(**data) -> dict:
    return {"ok": True, **data}


def error(code: str) -> dict:
    return {"ok": False, "error": code}
