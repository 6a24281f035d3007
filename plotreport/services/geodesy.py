from typing import Optional, Sequence, Tuple

from geographiclib.geodesic import Geodesic

from plotreport.services.coordinates import GeoPoint


geod = Geodesic.WGS84


def ring_area_perimeter(ring: Sequence[GeoPoint]) -> Optional[Tuple[float, float]]:
    """Geodesic (area m², perimeter m) of a boundary ring, or None below 3 vertices."""
    pts = list(ring)
    # KML rings repeat the first vertex at the end
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts = pts[:-1]
    if len(pts) < 3:
        return None

    poly = geod.Polygon()
    for p in pts:
        poly.AddPoint(p.lat, p.lng)
    _, perimeter, area = poly.Compute(False, True)
    return abs(area), perimeter
