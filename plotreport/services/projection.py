from typing import Sequence, Tuple

from plotreport.services.coordinates import GeoPoint

CANVAS_SIZE = 200  # drawing surface side, in SVG units
PADDING = 5
MIN_VERTICES = 3

ProjectedPolygon = Tuple[Tuple[float, float], ...]


def project(ring: Sequence[GeoPoint], size: float = CANVAS_SIZE, pad: float = PADDING) -> ProjectedPolygon:
    """
    Fit a lng/lat ring into a ``size`` x ``size`` square with ``pad`` units of margin.

    Order and length are preserved. The y axis is flipped (screen y grows downward,
    latitude grows upward). A zero span on an axis uses a divisor of 1, which pins
    that axis to the padded edge instead of dividing by zero.
    """
    if len(ring) < MIN_VERTICES:
        raise ValueError(f"need at least {MIN_VERTICES} vertices to project, got {len(ring)}")

    lngs = [p.lng for p in ring]
    lats = [p.lat for p in ring]
    min_lng, max_lng = min(lngs), max(lngs)
    min_lat, max_lat = min(lats), max(lats)
    span_lng = (max_lng - min_lng) or 1
    span_lat = (max_lat - min_lat) or 1
    inner = size - 2 * pad

    return tuple(
        (
            (p.lng - min_lng) / span_lng * inner + pad,
            (size - pad) - (p.lat - min_lat) / span_lat * inner,
        )
        for p in ring
    )
