import asyncio
import io

import pytest
from lxml import etree
from PIL import Image

from plotreport.services.coordinates import GeoPoint
from plotreport.services.plot_render import RASTER_SIZE, build_plot_svg, rasterize, render_plot_image
from plotreport.services.projection import project

SQUARE = (GeoPoint(33.0, 35.0), GeoPoint(33.0, 35.1), GeoPoint(33.1, 35.1), GeoPoint(33.1, 35.0))
SVG_NS = "{http://www.w3.org/2000/svg}"


def run(coro):
    return asyncio.run(coro)


def test_svg_has_polygon_and_one_marker_per_vertex():
    svg = build_plot_svg(project(SQUARE))
    root = etree.fromstring(svg.encode())
    assert root.get("viewBox") == "0 0 200 200"
    polygons = root.findall(f"{SVG_NS}polygon")
    assert len(polygons) == 1
    assert polygons[0].get("points") == "5,195 5,5 195,5 195,195"
    circles = root.findall(f"{SVG_NS}circle")
    assert [(c.get("cx"), c.get("cy")) for c in circles] == [("5", "195"), ("5", "5"), ("195", "5"), ("195", "195")]
    assert root.find(f"{SVG_NS}rect").get("fill") == "#fff"


def test_rasterize_gives_white_300px_png(fake_svg_to_png):
    png = run(rasterize("<svg/>"))
    img = Image.open(io.BytesIO(png))
    assert img.format == "PNG"
    assert img.size == (RASTER_SIZE, RASTER_SIZE)
    assert img.mode == "RGB"
    assert fake_svg_to_png == ["<svg/>"]


def test_transparent_output_is_composited_on_white(monkeypatch):
    from plotreport.services import plot_render

    def transparent(svg, size):
        out = io.BytesIO()
        Image.new("RGBA", (150, 150), (0, 0, 0, 0)).save(out, format="PNG")
        return out.getvalue()

    monkeypatch.setattr(plot_render, "_svg_to_png", transparent)
    img = Image.open(io.BytesIO(run(rasterize("<svg/>"))))
    assert img.size == (RASTER_SIZE, RASTER_SIZE)
    assert img.getpixel((10, 10)) == (255, 255, 255)


def test_render_failure_returns_none(broken_svg_to_png):
    assert run(rasterize("<svg/>")) is None


def test_undecodable_output_returns_none(monkeypatch):
    from plotreport.services import plot_render

    monkeypatch.setattr(plot_render, "_svg_to_png", lambda svg, size: b"not a png")
    assert run(rasterize("<svg/>")) is None


@pytest.mark.parametrize("n", [0, 1, 2])
def test_short_ring_is_skipped_without_drawing(fake_svg_to_png, n):
    assert run(render_plot_image(SQUARE[:n])) is None
    assert fake_svg_to_png == []


def test_render_plot_image_draws_projected_ring(fake_svg_to_png):
    png = run(render_plot_image(SQUARE))
    assert png is not None
    assert "5,195 5,5 195,5 195,195" in fake_svg_to_png[0]


def test_real_cairosvg_rasterization():
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError):
        pytest.skip("cairosvg / system cairo not available")

    png = run(render_plot_image(SQUARE))
    img = Image.open(io.BytesIO(png)).convert("RGB")
    assert img.size == (RASTER_SIZE, RASTER_SIZE)
    # corner outside the polygon padding stays white, centre is polygon fill
    assert img.getpixel((1, 1)) == (255, 255, 255)
    r, g, b = img.getpixel((150, 150))
    assert g > r and g > b
