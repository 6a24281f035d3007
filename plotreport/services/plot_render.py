import asyncio
import io
import logging
from typing import Optional, Sequence
from xml.sax.saxutils import quoteattr

from PIL import Image

from plotreport.services.coordinates import GeoPoint
from plotreport.services.projection import CANVAS_SIZE, MIN_VERTICES, ProjectedPolygon, project

logger = logging.getLogger(__name__)

RASTER_SIZE = 300  # px, square

POLYGON_FILL = "#22c55e"
POLYGON_STROKE = "#15803d"
VERTEX_FILL = "#dc2626"
VERTEX_RADIUS = 3


def _fmt(v: float) -> str:
    return f"{v:.3f}".rstrip("0").rstrip(".")


def build_plot_svg(projected: ProjectedPolygon, size: int = CANVAS_SIZE) -> str:
    """Vector drawing of the plot: filled outline plus a marker at each vertex."""
    points = " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in projected)
    circles = "".join(
        f'<circle cx="{_fmt(x)}" cy="{_fmt(y)}" r="{VERTEX_RADIUS}" '
        f'fill="{VERTEX_FILL}" stroke="#fff" stroke-width="1"/>'
        for x, y in projected
    )
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {size} {size}" '
        f'width="{size}" height="{size}">'
        f'<rect x="0" y="0" width="{size}" height="{size}" fill="#fff"/>'
        f'<polygon points={quoteattr(points)} fill="{POLYGON_FILL}" '
        f'stroke="{POLYGON_STROKE}" stroke-width="2"/>'
        f"{circles}"
        "</svg>"
    )


def _svg_to_png(svg: str, size: int) -> bytes:
    # cairosvg loads the system cairo library on import
    import cairosvg

    return cairosvg.svg2png(
        bytestring=svg.encode("utf-8"),
        output_width=size,
        output_height=size,
        background_color="white",
    )


def _rasterize_sync(svg: str, size: int) -> bytes:
    drawn = Image.open(io.BytesIO(_svg_to_png(svg, size))).convert("RGBA")
    if drawn.size != (size, size):
        drawn = drawn.resize((size, size), Image.LANCZOS)

    canvas = Image.new("RGB", (size, size), "white")
    canvas.paste(drawn, (0, 0), drawn)
    out = io.BytesIO()
    canvas.save(out, format="PNG")
    return out.getvalue()


async def rasterize(svg: str, size: int = RASTER_SIZE) -> Optional[bytes]:
    """
    Convert the SVG to a ``size`` x ``size`` PNG on a white background.

    Returns None when drawing or decoding fails; callers carry on without the image.
    """
    try:
        return await asyncio.to_thread(_rasterize_sync, svg, size)
    except Exception:
        logger.exception("plot rasterization failed; continuing without image")
        return None


async def render_plot_image(ring: Sequence[GeoPoint]) -> Optional[bytes]:
    if len(ring) < MIN_VERTICES:
        logger.debug("ring has %d vertices; skipping plot image", len(ring))
        return None
    return await rasterize(build_plot_svg(project(ring)))
