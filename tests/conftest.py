import io
import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]

# Prefer repo sources over any installed package.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# must be set before plotreport.db.session builds its engine
os.environ["DATABASE_URL"] = "sqlite://"


DESCRIPTION = (
    "<table><tr><td>"
    "Δήμος: <b>Lemesos</b><hr>"
    "Εμβαδό: <b>1500 μ²</b><hr>"
    "Αρ. Φ/Σχ: <b>54/620</b><hr>"
    "Αριθμός εγγραφης: <b>0/12345</b><hr>"
    "Ειδος Ακινήτου: <b>Χωράφι</b><hr>"
    "Ζώνη: <b>Γ3</b><hr>"
    "Ζωνη Περιγραφή: <b>Γεωργική Ζώνη</b><hr>"
    "Δόμηση: <b>10%</b><hr>"
    "Κάλυψη: <b>10%</b><hr>"
    "Ορόφοι: <b>2,</b><hr>"
    "Υψος: <b>8.3 μ</b><hr>"
    "Αξία 2018: <b>€45,000</b><hr>"
    "Αξία 2021: <b>€52,000</b>"
    "</td></tr></table>"
)

SQUARE_RING = "33.0,35.0,0 33.0,35.1,0 33.1,35.1,0 33.1,35.0,0"


def lookat(lat, lng) -> str:
    return f"<LookAt><longitude>{lng}</longitude><latitude>{lat}</latitude><range>500</range></LookAt>"


def build_kml(
    *,
    name: str = "Plot 0/12345",
    top_lookat: str = "",
    folder_lookat: str = "",
    description: str | None = DESCRIPTION,
    ring: str | None = SQUARE_RING,
) -> str:
    desc = f"<description><![CDATA[{description}]]></description>" if description is not None else ""
    polygon = (
        "<Polygon><outerBoundaryIs><LinearRing>"
        f"<coordinates>\n  {ring}\n</coordinates>"
        "</LinearRing></outerBoundaryIs></Polygon>"
        if ring is not None else ""
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<kml xmlns="http://www.opengis.net/kml/2.2">'
        "<Document>"
        f"<name>{name}</name>"
        f"<Placemark><name>Parcel</name>{top_lookat}</Placemark>"
        "<Folder><name>DLS</name>"
        f"<Placemark><name>Plot</name>{folder_lookat}{desc}{polygon}</Placemark>"
        "</Folder>"
        "</Document>"
        "</kml>"
    )


@pytest.fixture
def make_kml():
    return build_kml


@pytest.fixture
def sample_kml() -> str:
    return build_kml()


def _png(size=(300, 300), color=(34, 197, 94, 255)) -> bytes:
    from PIL import Image

    out = io.BytesIO()
    Image.new("RGBA", size, color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def fake_svg_to_png(monkeypatch):
    """Replace the cairo step with a Pillow image; records the SVG it was given."""
    from plotreport.services import plot_render

    calls = []

    def fake(svg, size):
        calls.append(svg)
        return _png((size, size))

    monkeypatch.setattr(plot_render, "_svg_to_png", fake)
    return calls


@pytest.fixture
def broken_svg_to_png(monkeypatch):
    from plotreport.services import plot_render

    def boom(svg, size):
        raise OSError("no library called cairo was found")

    monkeypatch.setattr(plot_render, "_svg_to_png", boom)


@pytest.fixture
def reports_dir(tmp_path, monkeypatch):
    from plotreport.core.config import settings

    target = tmp_path / "reports"
    monkeypatch.setattr(settings, "reports_dir", str(target))
    return target


@pytest.fixture
def client(reports_dir):
    from fastapi.testclient import TestClient
    from plotreport.main import app

    with TestClient(app) as c:
        yield c
