from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union

from plotreport.services.coordinates import CoordinateResult, Polygon, boundary_ring, resolve_coordinates
from plotreport.services.fields import extract_fields
from plotreport.services.kml import parse_document
from plotreport.services.plot_render import render_plot_image
from plotreport.services.projection import MIN_VERTICES

logger = logging.getLogger(__name__)

PLOT_DIAGRAM = "Plot Diagram"


@dataclass(frozen=True)
class ExtractionResult:
    fields: Mapping[str, str]
    coordinate: CoordinateResult
    ring: Polygon
    source_name: Optional[str] = None

    @property
    def coordinates_text(self) -> str:
        return self.coordinate.as_text()

    @property
    def has_polygon(self) -> bool:
        return len(self.ring) >= MIN_VERTICES


def extract_survey(raw: Union[str, bytes], source_name: Optional[str] = None) -> ExtractionResult:
    """
    One extraction pass over an uploaded KML document.

    Raises ParseError if the document is not well-formed; every other gap
    (missing label, no coordinate, no ring) comes back as an empty value.
    """
    root = parse_document(raw)
    result = ExtractionResult(
        fields=extract_fields(root),
        coordinate=resolve_coordinates(root),
        ring=boundary_ring(root),
        source_name=source_name,
    )
    logger.info(
        "extracted %s: plot=%r tier=%s vertices=%d",
        source_name or "<upload>",
        result.fields.get("PlotNumber", ""),
        result.coordinate.source_tier.value,
        len(result.ring),
    )
    return result


@dataclass
class ExportSession:
    """
    State for one upload/export round.

    ``load`` replaces the current result outright (last upload wins). ``previews``
    maps a report image label to PNG/JPEG bytes and lives only as long as the session.
    """
    result: Optional[ExtractionResult] = None
    previews: Dict[str, bytes] = field(default_factory=dict)

    def load(self, raw: Union[str, bytes], source_name: Optional[str] = None) -> ExtractionResult:
        # parse first so a bad upload leaves the previous result untouched
        self.result = extract_survey(raw, source_name=source_name)
        return self.result

    def set_preview(self, label: str, data: Optional[bytes]) -> None:
        if data:
            self.previews[label] = data
        else:
            self.previews.pop(label, None)

    async def plot_image(self) -> Optional[bytes]:
        """An uploaded Plot Diagram wins over the rendered polygon."""
        uploaded = self.previews.get(PLOT_DIAGRAM)
        if uploaded:
            return uploaded
        if self.result is None or not self.result.has_polygon:
            return None
        return await render_plot_image(self.result.ring)
