from __future__ import annotations

from typing import Iterable, Sequence

from PIL import Image, ImageColor, ImageDraw

from .models import DrawEvent, FillEvent, ImageEvent, LineEvent, PathEvent, Point


class Canvas:
    """RGBA raster surface mutated only through drawing events."""

    MODE = "RGBA"

    def __init__(self, width: int, height: int, background: str = "white") -> None:
        self.width = width
        self.height = height
        self._image = Image.new(self.MODE, (width, height), ImageColor.getcolor(background, self.MODE))

    def apply(self, events: Iterable[DrawEvent]) -> None:
        for event in events:
            if isinstance(event, LineEvent):
                self._stroke(
                    [Point(event.x1, event.y1), Point(event.x2, event.y2)],
                    event.color,
                    event.width,
                )
            elif isinstance(event, PathEvent):
                self._stroke(event.nodes, event.color, event.width)
            elif isinstance(event, FillEvent):
                self.fill(event.color)
            elif isinstance(event, ImageEvent):
                self._put_image(event)

    def fill(self, color: str) -> None:
        layer = Image.new(self.MODE, self._image.size, ImageColor.getcolor(color, self.MODE))
        self._image.alpha_composite(layer)

    def _stroke(self, nodes: Sequence[Point], color: str, width: float) -> None:
        # A lone moveTo draws nothing.
        if len(nodes) < 2:
            return

        rgba = ImageColor.getcolor(color, self.MODE)
        line_width = max(1, round(width))
        # Stroke on a separate layer: overlapping caps must not blend twice.
        layer = Image.new(self.MODE, self._image.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        draw.line([(n.x, n.y) for n in nodes], fill=rgba, width=line_width, joint="curve")

        # Round caps.
        if line_width > 2:
            radius = line_width / 2
            for node in (nodes[0], nodes[-1]):
                draw.ellipse(
                    (node.x - radius, node.y - radius, node.x + radius, node.y + radius),
                    fill=rgba,
                )
        self._image.alpha_composite(layer)

    def _put_image(self, event: ImageEvent) -> None:
        patch = Image.frombytes(self.MODE, (event.width, event.height), event.data)
        # No mask: pixels are replaced, not composited.
        self._image.paste(patch, (event.x, event.y))

    def to_bytes(self) -> bytes:
        return self._image.tobytes()

    def image_data(self) -> dict:
        return {"data": self.to_bytes(), "width": self.width, "height": self.height}
