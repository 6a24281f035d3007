from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from plotreport.services.kml import KmlNode, document_node, first_folder_placemark

logger = logging.getLogger(__name__)

RING_PATH = ("Polygon", "outerBoundaryIs", "LinearRing", "coordinates")


class SourceTier(str, Enum):
    PRIMARY_VIEWPOINT = "PrimaryViewpoint"
    FOLDER_VIEWPOINT = "FolderViewpoint"
    POLYGON_CENTROID = "PolygonCentroid"
    NONE = "None"


@dataclass(frozen=True)
class GeoPoint:
    lng: float
    lat: float

    def as_text(self) -> str:
        return f"{self.lat:.6f}, {self.lng:.6f}"


Polygon = Tuple[GeoPoint, ...]


@dataclass(frozen=True)
class CoordinateResult:
    point: Optional[GeoPoint]
    vertex_count: int
    source_tier: SourceTier

    def as_text(self) -> str:
        return self.point.as_text() if self.point is not None else ""


UNAVAILABLE = CoordinateResult(point=None, vertex_count=0, source_tier=SourceTier.NONE)


# ---------------- Numeric helpers ----------------

def _to_float(raw: Optional[str]) -> float:
    if raw is None:
        raise ValueError("missing value")
    value = float(raw.strip())
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {raw!r}")
    return value


def make_point(lng: float, lat: float) -> GeoPoint:
    if not (-180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0):
        raise ValueError(f"coordinate out of range: {lng}, {lat}")
    return GeoPoint(lng=lng, lat=lat)


def parse_ring(text: Optional[str]) -> Polygon:
    """
    Parse a KML ``<coordinates>`` body: whitespace-separated ``lng,lat[,alt]`` tuples.

    Raises ValueError if the body is empty or any vertex is malformed.
    """
    tokens = (text or "").split()
    if not tokens:
        raise ValueError("empty coordinates")
    ring = []
    for tok in tokens:
        parts = tok.split(",")
        if len(parts) not in (2, 3):
            raise ValueError(f"bad vertex {tok!r}")
        ring.append(make_point(_to_float(parts[0]), _to_float(parts[1])))
    return tuple(ring)


def _viewpoint(feature: Optional[KmlNode]) -> Optional[GeoPoint]:
    if feature is None:
        return None
    look_at = feature.child("LookAt")
    if look_at is None:
        return None
    try:
        return make_point(_to_float(look_at.text_at("longitude")),
                          _to_float(look_at.text_at("latitude")))
    except ValueError as e:
        logger.debug("unusable LookAt on <%s>: %s", feature.tag, e)
        return None


# ---------------- Strategies (tree -> optional result) ----------------

def primary_viewpoint(root: KmlNode) -> Optional[CoordinateResult]:
    doc = document_node(root)
    if doc is None:
        return None
    # the top-level Placemark's LookAt, else one on the Document itself
    point = _viewpoint(doc.child("Placemark")) or _viewpoint(doc)
    if point is None:
        return None
    return CoordinateResult(point, 1, SourceTier.PRIMARY_VIEWPOINT)


def folder_viewpoint(root: KmlNode) -> Optional[CoordinateResult]:
    point = _viewpoint(first_folder_placemark(root))
    if point is None:
        return None
    return CoordinateResult(point, 1, SourceTier.FOLDER_VIEWPOINT)


def polygon_centroid(root: KmlNode) -> Optional[CoordinateResult]:
    ring = boundary_ring(root)
    if not ring:
        return None
    n = len(ring)
    lng = sum(p.lng for p in ring) / n
    lat = sum(p.lat for p in ring) / n
    return CoordinateResult(GeoPoint(lng=lng, lat=lat), n, SourceTier.POLYGON_CENTROID)


STRATEGIES: Tuple[Tuple[SourceTier, Callable[[KmlNode], Optional[CoordinateResult]]], ...] = (
    (SourceTier.PRIMARY_VIEWPOINT, primary_viewpoint),
    (SourceTier.FOLDER_VIEWPOINT, folder_viewpoint),
    (SourceTier.POLYGON_CENTROID, polygon_centroid),
)


def boundary_ring(root: KmlNode) -> Polygon:
    """Outer boundary of the plot Placemark, or () when missing or malformed."""
    placemark = first_folder_placemark(root)
    if placemark is None:
        return ()
    text = placemark.text_at(*RING_PATH)
    if text is None:
        return ()
    try:
        return parse_ring(text)
    except ValueError as e:
        logger.debug("boundary ring unusable: %s", e)
        return ()


def resolve_coordinates(root: KmlNode) -> CoordinateResult:
    for tier, strategy in STRATEGIES:
        result = strategy(root)
        if result is not None:
            logger.debug("coordinate resolved from %s", tier.value)
            return result
    logger.debug("no coordinate tier produced a usable point")
    return UNAVAILABLE
