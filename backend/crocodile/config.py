import os


def _split_words(raw: str) -> list[str]:
    return [w.strip() for w in raw.split(",") if w.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    TESTING = False

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Game
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "120"))
    TIMEOUT_DURATION_SEC = int(os.environ.get("TIMEOUT_DURATION_SEC", "5"))
    MAX_USERS = int(os.environ.get("MAX_USERS", "16"))
    MIN_USERS_TO_START = 2
    CANVAS_WIDTH = int(os.environ.get("CANVAS_WIDTH", "100"))
    CANVAS_HEIGHT = int(os.environ.get("CANVAS_HEIGHT", "141"))

    # Answers ("shikimori" or "words")
    ANSWER_SOURCE = os.environ.get("ANSWER_SOURCE", "shikimori").strip().lower()
    ANSWER_SOURCE_URL = os.environ.get("ANSWER_SOURCE_URL", "https://shikimori.one/api/graphql")
    ANSWER_SOURCE_LIMIT = int(os.environ.get("ANSWER_SOURCE_LIMIT", "50"))
    ANSWER_SOURCE_TIMEOUT_SEC = float(os.environ.get("ANSWER_SOURCE_TIMEOUT_SEC", "10"))
    ANSWER_WORDS = _split_words(os.environ.get("ANSWER_WORDS", ""))

    # Idle room reclamation
    EMPTY_ROOM_CHECK_INTERVAL_SEC = int(os.environ.get("EMPTY_ROOM_CHECK_INTERVAL_SEC", "600"))
    EMPTY_ROOM_MAX_CHECKS = int(os.environ.get("EMPTY_ROOM_MAX_CHECKS", "3"))
