"""
Local map thumbnails drawn from GeoJSON boundaries.

Used when remote static maps are disabled. The view is a bounding box around
the pins with a margin in degrees, widened to the canvas aspect ratio so the
outlines are not distorted, and projected linearly to pixels.
"""

import base64
import io
import logging
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from services.export_errors import EnrichmentFailure

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = "#ffffff"
BORDER_COLOR = "#888888"
PIN_COLOR = "#ff0000"
TEXT_COLOR = "#000000"
PIN_RADIUS = 5
MARGIN_DEGREES = 5.0


class MapPin(NamedTuple):
    latitude: float
    longitude: float
    label: Optional[str] = None


class Viewport:
    """Geographic bounding box mapped onto a width x height canvas."""

    def __init__(self, pins: Sequence[MapPin], width: int, height: int,
                 margin: float = MARGIN_DEGREES):
        self.width = width
        self.height = height

        min_x = min(pin.longitude for pin in pins) - margin
        max_x = max(pin.longitude for pin in pins) + margin
        min_y = min(pin.latitude for pin in pins) - margin
        max_y = max(pin.latitude for pin in pins) + margin

        bbox_width = max_x - min_x
        bbox_height = max_y - min_y
        canvas_aspect = width / height

        if bbox_width / bbox_height > canvas_aspect:
            extra = (bbox_width / canvas_aspect - bbox_height) / 2
            min_y -= extra
            max_y += extra
        else:
            extra = (bbox_height * canvas_aspect - bbox_width) / 2
            min_x -= extra
            max_x += extra

        self.min_x, self.max_x = min_x, max_x
        self.min_y, self.max_y = min_y, max_y

    def project(self, lon: float, lat: float) -> Tuple[float, float]:
        """Longitude/latitude to pixel coordinates (y grows downwards)."""
        x = (lon - self.min_x) / (self.max_x - self.min_x) * self.width
        y = self.height - (lat - self.min_y) / (self.max_y - self.min_y) * self.height
        return x, y

    def intersects(self, ring: Sequence[Sequence[float]]) -> bool:
        """Cheap bounding-box test to skip outlines far outside the view."""
        lons = [point[0] for point in ring]
        lats = [point[1] for point in ring]
        return not (max(lons) < self.min_x or min(lons) > self.max_x
                    or max(lats) < self.min_y or min(lats) > self.max_y)


def iter_outer_rings(geojson: Optional[Dict]) -> Iterator[List[List[float]]]:
    """Yield the outer ring of every Polygon and MultiPolygon feature."""
    if not geojson:
        return
    for feature in geojson.get("features") or []:
        geometry = (feature or {}).get("geometry") or {}
        geometry_type = geometry.get("type")
        coordinates = geometry.get("coordinates") or []
        if geometry_type == "Polygon":
            polygons = [coordinates]
        elif geometry_type == "MultiPolygon":
            polygons = coordinates
        else:
            continue
        for polygon in polygons:
            if polygon and len(polygon[0]) >= 2:
                yield polygon[0]


def _load_font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def render_map_image(geojson: Optional[Dict], pins: Sequence[MapPin], title: str,
                     width: int = 800, height: int = 400) -> str:
    """
    Rasterize boundary outlines and pins into a PNG data URI.

    Args:
        geojson: Boundary FeatureCollection; None draws pins only
        pins: Markers to draw, at least one
        title: Country or state name written in the top-left corner
        width: Canvas width in pixels
        height: Canvas height in pixels

    Returns:
        "data:image/png;base64,..." string

    Raises:
        EnrichmentFailure: If no pins are given or drawing fails
    """
    if not pins:
        raise EnrichmentFailure("No pins to draw")

    try:
        viewport = Viewport(pins, width, height)
        image = Image.new("RGB", (width, height), BACKGROUND_COLOR)
        draw = ImageDraw.Draw(image)

        for ring in iter_outer_rings(geojson):
            if not viewport.intersects(ring):
                continue
            points = [viewport.project(point[0], point[1]) for point in ring]
            draw.line(points + [points[0]], fill=BORDER_COLOR, width=1)

        label_font = _load_font(16)
        for pin in pins:
            x, y = viewport.project(pin.longitude, pin.latitude)
            draw.ellipse(
                [x - PIN_RADIUS, y - PIN_RADIUS, x + PIN_RADIUS, y + PIN_RADIUS],
                fill=PIN_COLOR
            )
            if pin.label:
                draw.text((x + 8, y - 24), pin.label, fill=TEXT_COLOR, font=label_font)

        draw.text((30, 18), title, fill=TEXT_COLOR, font=_load_font(32))

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
    except (ValueError, TypeError, IndexError, OSError) as e:
        raise EnrichmentFailure(f"Failed to draw map for {title}: {e}")

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
