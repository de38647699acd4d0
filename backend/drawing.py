"""
Freehand drawing surface backed by a Pillow raster.

The canvas always has an opaque white background: the backend transcribes the
drawing with a vision model, and transparent pixels are not guaranteed to be
read as white.
"""

import base64
import io
import logging
from typing import Callable, Optional

from PIL import Image, ImageDraw

from config import settings

logger = logging.getLogger(__name__)

BACKGROUND = (255, 255, 255)
INK = (0, 0, 0)


class DrawingSurface:
    """
    Captures pointer strokes and exports the canvas as a PNG data URI.

    `on_export` receives the data URI each time a stroke ends, and an empty
    string when the canvas is cleared.
    """

    def __init__(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        on_export: Optional[Callable[[str], None]] = None,
        stroke_width: Optional[int] = None,
    ):
        self.width = width or settings.canvas_width
        self.height = height or settings.canvas_height
        self.stroke_width = stroke_width or settings.stroke_width
        self.on_export = on_export
        self.is_drawing = False
        self.has_drawing = False
        self._last_point: Optional[tuple[float, float]] = None
        self._image = Image.new("RGB", (self.width, self.height), BACKGROUND)
        self._draw = ImageDraw.Draw(self._image)

    @property
    def image(self) -> Image.Image:
        """A copy of the current canvas."""
        return self._image.copy()

    def _dot(self, x: float, y: float) -> None:
        r = self.stroke_width / 2
        self._draw.ellipse((x - r, y - r, x + r, y + r), fill=INK)

    def pointer_down(self, x: float, y: float) -> None:
        self.is_drawing = True
        self.has_drawing = True
        self._last_point = (x, y)
        self._dot(x, y)

    def pointer_move(self, x: float, y: float) -> None:
        if not self.is_drawing:
            return
        self._draw.line(
            [self._last_point, (x, y)],
            fill=INK,
            width=self.stroke_width,
            joint="curve",
        )
        # Round caps
        self._dot(x, y)
        self._last_point = (x, y)

    def pointer_up(self) -> None:
        if not self.is_drawing:
            return
        self.is_drawing = False
        self._last_point = None
        if self.on_export:
            self.on_export(self.export())

    # Leaving the canvas mid-stroke ends the stroke
    pointer_leave = pointer_up

    def export(self) -> str:
        """Encode the canvas as a `data:image/png;base64,...` URI."""
        bio = io.BytesIO()
        self._image.save(bio, format="PNG")
        encoded = base64.b64encode(bio.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def clear(self) -> None:
        """Reset to a blank white canvas and report "no content" to the caller."""
        self._draw.rectangle((0, 0, self.width, self.height), fill=BACKGROUND)
        self.is_drawing = False
        self.has_drawing = False
        self._last_point = None
        logger.debug("Drawing surface cleared")
        if self.on_export:
            self.on_export("")
