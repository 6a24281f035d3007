from pydantic import BaseModel
from typing import Dict, List, Optional

from plotreport.services.extraction import ExtractionResult
from plotreport.services.geodesy import ring_area_perimeter


class ExtractionResponse(BaseModel):
    source_name: Optional[str] = None
    fields: Dict[str, str]

    coordinates: str                  # "lat, lng" or ""
    source_tier: str
    vertex_count: int
    ring: List[List[float]]           # [[lng, lat], ...]

    # geodesic figures computed from the ring, not taken from the export
    boundary_area_m2: Optional[float] = None
    boundary_perimeter_m: Optional[float] = None

    @classmethod
    def from_result(cls, result: ExtractionResult) -> "ExtractionResponse":
        measured = ring_area_perimeter(result.ring)
        return cls(
            source_name=result.source_name,
            fields=dict(result.fields),
            coordinates=result.coordinates_text,
            source_tier=result.coordinate.source_tier.value,
            vertex_count=result.coordinate.vertex_count,
            ring=[[p.lng, p.lat] for p in result.ring],
            boundary_area_m2=measured[0] if measured else None,
            boundary_perimeter_m=measured[1] if measured else None,
        )
