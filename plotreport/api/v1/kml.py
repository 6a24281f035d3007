from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response

from plotreport.core.config import settings
from plotreport.schemas.kml import ExtractionResponse
from plotreport.services.extraction import ExtractionResult, extract_survey
from plotreport.services.plot_render import build_plot_svg, render_plot_image
from plotreport.services.projection import project

router = APIRouter(prefix="/api/v1/kml", tags=["KML"])


async def read_kml_upload(file: UploadFile) -> bytes:
    if not file.filename or not file.filename.lower().endswith(".kml"):
        raise HTTPException(400, "Please upload a valid .kml file.")
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(400, f"KML file exceeds {settings.max_upload_bytes} bytes.")
    return content


async def _extract_upload(file: UploadFile) -> ExtractionResult:
    # ParseError propagates to the app-level handler (400, error="parse_error")
    return extract_survey(await read_kml_upload(file), source_name=file.filename)


def _require_polygon(result: ExtractionResult) -> None:
    if not result.has_polygon:
        raise HTTPException(422, "No plot polygon data available for preview.")


@router.post("/extract", response_model=ExtractionResponse)
async def extract_kml(file: UploadFile = File(...)):
    """
    Parse an uploaded KML export and return:
      - fields (blank where a label is missing)
      - coordinates ("lat, lng") with the tier that produced them
      - the raw boundary ring and its geodesic area/perimeter
    """
    result = await _extract_upload(file)
    return ExtractionResponse.from_result(result)


@router.post("/plot.svg", summary="Plot polygon as SVG (200x200)")
async def plot_svg(file: UploadFile = File(...)):
    result = await _extract_upload(file)
    _require_polygon(result)
    return Response(build_plot_svg(project(result.ring)), media_type="image/svg+xml")


@router.post("/plot.png", summary="Plot polygon as PNG (300x300)")
async def plot_png(file: UploadFile = File(...)):
    result = await _extract_upload(file)
    _require_polygon(result)
    png = await render_plot_image(result.ring)
    if png is None:
        raise HTTPException(503, "Plot image could not be rendered.")
    return Response(png, media_type="image/png")
