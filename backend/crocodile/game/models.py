from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from PIL import ImageColor


RoomStateName = Literal["idle", "round", "timeout"]


@dataclass
class User:
    id: str
    login: str

    def to_dict(self) -> dict:
        return {"id": self.id, "login": self.login}


@dataclass
class Player:
    id: str
    login: str
    points: int = 0
    has_right_answer: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "login": self.login,
            "points": self.points,
            "hasRightAnswer": self.has_right_answer,
        }


@dataclass(frozen=True)
class Answer:
    label: str
    poster_url: str
    value: str

    def to_dict(self) -> dict:
        return {"label": self.label, "posterUrl": self.poster_url, "value": self.value}


@dataclass(frozen=True)
class TimerState:
    """Wall-clock snapshot of a running countdown, both fields in milliseconds."""

    start_time: int
    duration: int

    def remaining(self, now_ms: int) -> int:
        return max(0, self.duration - (now_ms - self.start_time))

    def to_dict(self) -> dict:
        return {"startTime": self.start_time, "duration": self.duration}


# Drawing events


class InvalidDrawEvent(ValueError):
    pass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class LineEvent:
    color: str
    width: float
    x1: float
    y1: float
    x2: float
    y2: float
    type: Literal["line"] = "line"


@dataclass(frozen=True)
class PathEvent:
    color: str
    width: float
    nodes: tuple[Point, ...] = ()
    type: Literal["path"] = "path"


@dataclass(frozen=True)
class FillEvent:
    color: str
    type: Literal["fill"] = "fill"


@dataclass(frozen=True)
class ImageEvent:
    data: bytes
    x: int
    y: int
    width: int
    height: int
    type: Literal["image"] = "image"


DrawEvent = Union[LineEvent, PathEvent, FillEvent, ImageEvent]


@dataclass(frozen=True)
class DrawEventsAdded:
    events: list[DrawEvent]
    artist_id: str


def _number(raw: dict, key: str) -> float:
    value = raw.get(key)
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidDrawEvent(f"{key} must be a number")
    return value


def _color(raw: dict) -> str:
    color = raw.get("color")
    if not isinstance(color, str) or not color.strip():
        raise InvalidDrawEvent("color must be a non-empty string")
    try:
        ImageColor.getrgb(color)
    except ValueError as exc:
        raise InvalidDrawEvent(f"unknown color {color!r}") from exc
    return color


def _width(raw: dict) -> float:
    width = _number(raw, "width")
    if width <= 0:
        raise InvalidDrawEvent("width must be positive")
    return width


def _image_bytes(raw: dict) -> bytes:
    data = raw.get("data")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, list):
        try:
            return bytes(data)
        except (TypeError, ValueError) as exc:
            raise InvalidDrawEvent("image data must hold bytes 0..255") from exc
    raise InvalidDrawEvent("image data must be a byte buffer")


def parse_draw_event(raw: Any) -> DrawEvent:
    """Build a drawing event from its wire form (a dict tagged by ``type``)."""
    if not isinstance(raw, dict):
        raise InvalidDrawEvent("draw event must be an object")

    kind = raw.get("type")
    if kind == "line":
        return LineEvent(
            color=_color(raw),
            width=_width(raw),
            x1=_number(raw, "x1"),
            y1=_number(raw, "y1"),
            x2=_number(raw, "x2"),
            y2=_number(raw, "y2"),
        )

    if kind == "path":
        nodes_raw = raw.get("nodes")
        if not isinstance(nodes_raw, list):
            raise InvalidDrawEvent("path nodes must be a list")
        nodes = []
        for node in nodes_raw:
            if not isinstance(node, dict):
                raise InvalidDrawEvent("path node must be an object")
            nodes.append(Point(x=_number(node, "x"), y=_number(node, "y")))
        return PathEvent(color=_color(raw), width=_width(raw), nodes=tuple(nodes))

    if kind == "fill":
        return FillEvent(color=_color(raw))

    if kind == "image":
        data = _image_bytes(raw)
        width = int(_number(raw, "width"))
        height = int(_number(raw, "height"))
        if width <= 0 or height <= 0:
            raise InvalidDrawEvent("image size must be positive")
        if len(data) != width * height * 4:
            raise InvalidDrawEvent("image data does not match width * height * 4")
        return ImageEvent(
            data=data,
            x=int(_number(raw, "x")),
            y=int(_number(raw, "y")),
            width=width,
            height=height,
        )

    raise InvalidDrawEvent(f"unknown draw event type {kind!r}")


def parse_draw_events(raw: Any) -> list[DrawEvent]:
    if not isinstance(raw, list):
        raise InvalidDrawEvent("draw events must be a list")
    return [parse_draw_event(item) for item in raw]


def draw_event_to_dict(event: DrawEvent) -> dict:
    if isinstance(event, LineEvent):
        return {
            "type": "line",
            "color": event.color,
            "width": event.width,
            "x1": event.x1,
            "y1": event.y1,
            "x2": event.x2,
            "y2": event.y2,
        }
    if isinstance(event, PathEvent):
        return {
            "type": "path",
            "color": event.color,
            "width": event.width,
            "nodes": [{"x": n.x, "y": n.y} for n in event.nodes],
        }
    if isinstance(event, FillEvent):
        return {"type": "fill", "color": event.color}
    return {
        "type": "image",
        "data": event.data,
        "x": event.x,
        "y": event.y,
        "width": event.width,
        "height": event.height,
    }


# Room state snapshots carried by the state-changed event


@dataclass(frozen=True)
class IdleState:
    name: Literal["idle"] = "idle"


@dataclass(frozen=True)
class RoundState:
    players: list[Player] = field(default_factory=list)
    artist_id: str = ""
    timer: TimerState | None = None
    answer: Answer | None = None
    name: Literal["round"] = "round"


@dataclass(frozen=True)
class TimeoutState:
    timer: TimerState | None = None
    answer: Answer | None = None
    name: Literal["timeout"] = "timeout"


RoomState = Union[IdleState, RoundState, TimeoutState]
