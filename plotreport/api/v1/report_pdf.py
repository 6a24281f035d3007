from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
import io, logging, os, re
from datetime import datetime
from typing import Optional
from reportlab.pdfgen import canvas
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Table, TableStyle, Paragraph
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors
from xml.sax.saxutils import escape
from plotreport.api.v1.kml import read_kml_upload
from plotreport.core.config import settings
from plotreport.db.session import get_db
from plotreport.models.plot_report import PlotReport
from plotreport.schemas.report_pdf import ReportNarrative
from plotreport.services.extraction import PLOT_DIAGRAM, ExportSession, ExtractionResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/report_pdf", tags=["reports"])

# ---------- layout config ----------
MARGIN = 28
LOGO_MAX_H = 55  # points
LOGO_MAX_W = 72  # points (to prevent super-wide logos)
PLOT_IMAGE_PT = 220
VIEW_IMAGE_W, VIEW_IMAGE_H = 300, 200
FONT_NAME = "ReportFont"
FONT_BOLD_NAME = "ReportFont-Bold"

IMAGE_LABELS = (PLOT_DIAGRAM, "Satellite View", "Road Map", "Hybrid View", "Terrain View")


def _ensure_dir(p: str) -> None:
    os.makedirs(p, exist_ok=True)


def _register(name: str, path: Optional[str]) -> bool:
    if name in pdfmetrics.getRegisteredFontNames():
        return True
    if not path or not os.path.exists(path):
        return False
    pdfmetrics.registerFont(TTFont(name, path))
    return True


def _fonts() -> tuple[str, str]:
    """
    (regular, bold) font names. The TTFs carry Greek glyphs; the base-14
    Helvetica pair has none and is only used when no TTF can be found.
    """
    if not _register(FONT_NAME, settings.font_path):
        logger.warning("font %s not found; Greek text will not render", settings.font_path)
        return "Helvetica", "Helvetica-Bold"
    if not _register(FONT_BOLD_NAME, settings.font_bold_path):
        return FONT_NAME, FONT_NAME
    return FONT_NAME, FONT_BOLD_NAME


# ---------- helpers ----------
def _hr(c: canvas.Canvas, page_w: float, y: float, *, margin: int = MARGIN,
        thickness: float = 1, color=colors.HexColor("#CFCFCF")) -> None:
    """Draw a horizontal rule across the content width at y."""
    c.saveState()
    c.setStrokeColor(color)
    c.setLineWidth(thickness)
    c.line(margin, y, page_w - margin, y)
    c.restoreState()


def _try_load_logo() -> ImageReader | None:
    try:
        if settings.logo_path and os.path.exists(settings.logo_path):
            return ImageReader(settings.logo_path)
    except (FileNotFoundError, OSError):
        logger.warning("logo at %s could not be loaded", settings.logo_path)
    return None


def _draw_header(c: canvas.Canvas, page_w: float, page_h: float, title: str, subtitle: str) -> float:
    """
    Draw header with (optional) logo on the left and text on the right.
    Returns the y-position just below the header separator.
    """
    regular, bold = _fonts()
    band_top = page_h - MARGIN
    band_bottom = page_h - 70
    center_y = band_bottom + (band_top - band_bottom) / 2

    logo = _try_load_logo()
    text_x = MARGIN  # will shift if logo exists
    if logo:
        iw, ih = logo.getSize()
        scale = min(LOGO_MAX_W / iw, LOGO_MAX_H / ih)
        w = max(1, iw * scale)
        h = max(1, ih * scale)
        c.drawImage(logo, MARGIN, center_y - (h / 2), width=w, height=h, preserveAspectRatio=True, mask='auto')
        text_x = MARGIN + w + 15  # gap to the right of the logo

    title_y = center_y + 3
    c.setFont(bold, 16)
    c.drawString(text_x, title_y, title or "PROPERTY VALUATION REPORT")
    c.setFont(regular, 9)
    c.drawString(text_x, title_y - 15, subtitle)

    sep_y = page_h - 90
    _hr(c, page_w, sep_y)
    return sep_y


def _new_page(c: canvas.Canvas, page_no: list[int], page_w: float, page_h: float) -> float:
    regular, _ = _fonts()
    c.setFont(regular, 8)
    c.drawRightString(page_w - MARGIN, 18, f"Page {page_no[0]}")
    c.showPage()
    page_no[0] += 1
    return page_h - MARGIN


def _draw_image(c: canvas.Canvas, page_w: float, y: float, img_bytes: bytes, box_w: float, box_h: float) -> float:
    """Draw the image centred and scaled to fit the box. Returns the y below it."""
    img = ImageReader(io.BytesIO(img_bytes))
    iw, ih = img.getSize()
    scale = min(box_w / iw, box_h / ih)
    w = max(1, iw * scale)
    h = max(1, ih * scale)
    x = (page_w - w) / 2
    c.drawImage(img, x, y - h, width=w, height=h, preserveAspectRatio=True, mask='auto')
    return y - h - 10


def summary_rows(result: ExtractionResult, narrative: ReportNarrative) -> list[tuple[str, str]]:
    f = result.fields
    return [
        ("Bank Name", narrative.bank_name),
        ("Report Type", narrative.report_type),
        ("Plot Number", f["PlotNumber"]),
        ("Plot Area", f["PlotArea"]),
        ("Coordinates", result.coordinates_text),
        ("Location", f["Location"]),
        ("Municipality", f["Municipality"]),
        ("Area", f["Area"]),
        ("Sheet/Plan", f["SheetPlan"]),
        ("Registration No", f["RegistrationNo"]),
        ("Property Type", f["PropertyType"]),
        ("Zone", f["Zone"]),
        ("Zone Description", f["ZoneDescription"]),
        ("Building Coefficient", f["BuildingCoefficient"]),
        ("Coverage", f["Coverage"]),
        ("Floors", f["Floors"]),
        ("Height", f["Height"]),
        ("Value 2018", f["Value2018"]),
        ("Value 2021", f["Value2021"]),
        ("KML File", result.source_name or "Not uploaded"),
    ]


def _make_summary_table(page_w: float, rows: list[tuple[str, str]]) -> Table:
    regular, bold = _fonts()
    avail_w = page_w - (2 * MARGIN)

    styles = getSampleStyleSheet()
    label_style = ParagraphStyle("label", parent=styles["Normal"], fontName=bold, fontSize=10)
    value_style = ParagraphStyle("value", parent=styles["Normal"], fontName=regular, fontSize=10, leading=13)

    data = [
        [Paragraph(escape(label), label_style), Paragraph(escape(value or "—"), value_style)]
        for label, value in rows
    ]
    table = Table(data, colWidths=[130, avail_w - 130], hAlign="LEFT")
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#B0B0B0")),
        ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#DBEAFE")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def build_report_pdf(result: ExtractionResult, narrative: ReportNarrative,
                     plot_image: Optional[bytes], previews: dict[str, bytes]) -> bytes:
    """
    Lay out the report:
      - Header (logo + title + date)
      - Plot diagram (or a note when it could not be produced)
      - Summary table of extracted fields
      - Narrative sections
      - Remaining map views, one per block
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    page_w, page_h = A4
    avail_w = page_w - (2 * MARGIN)
    page_no = [1]
    regular, bold = _fonts()

    subtitle = " | ".join(s for s in (narrative.report_type, narrative.report_date or datetime.now().strftime('%Y-%m-%d')) if s)
    y = _draw_header(c, page_w, page_h, narrative.report_title, subtitle) - 15

    if plot_image:
        try:
            y = _draw_image(c, page_w, y, plot_image, PLOT_IMAGE_PT, PLOT_IMAGE_PT)
        except Exception:
            logger.exception("plot diagram could not be embedded")
            plot_image = None
    if not plot_image:
        c.setFont(regular, 9)
        c.drawString(MARGIN + 12, y, "Plot diagram could not be embedded.")
        y -= 14

    table = _make_summary_table(page_w, summary_rows(result, narrative))
    _, h = table.wrapOn(c, avail_w, y)
    if y - h < MARGIN:
        y = _new_page(c, page_no, page_w, page_h)
    table.drawOn(c, MARGIN, y - h)
    y -= h + 20

    styles = getSampleStyleSheet()
    body = ParagraphStyle("body", parent=styles["Normal"], fontName=regular, fontSize=10, leading=14)
    for heading, text in (
        ("Introduction", narrative.introduction),
        ("Plot Description", narrative.plot_description),
        ("Findings", narrative.findings),
        ("Conclusion", narrative.conclusion),
    ):
        if not text.strip():
            continue
        para = Paragraph(escape(text).replace("\n", "<br/>"), body)
        _, ph = para.wrapOn(c, avail_w, y)
        if y - ph - 18 < MARGIN:
            y = _new_page(c, page_no, page_w, page_h)
        c.setFont(bold, 12)
        c.drawString(MARGIN, y, heading)
        y -= 8
        para.drawOn(c, MARGIN, y - ph)
        y -= ph + 16

    for label in IMAGE_LABELS[1:]:
        data = previews.get(label)
        if not data:
            continue
        if y - VIEW_IMAGE_H - 20 < MARGIN:
            y = _new_page(c, page_no, page_w, page_h)
        c.setFont(bold, 12)
        c.drawString(MARGIN, y, label)
        y -= 8
        try:
            y = _draw_image(c, page_w, y, data, VIEW_IMAGE_W, VIEW_IMAGE_H)
        except Exception:
            logger.exception("%s image could not be embedded", label)
            c.setFont(regular, 9)
            c.drawString(MARGIN + 12, y - 12, f"{label} could not be embedded.")
            y -= 26

    c.setFont(regular, 8)
    c.drawRightString(page_w - MARGIN, 18, f"Page {page_no[0]}")
    c.showPage()
    c.save()
    return buf.getvalue()


def _safe_name(s: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", s).strip("_") or "plot"


@router.post("", response_class=StreamingResponse, summary="Generate plot report PDF (server-side)")
async def generate_report_pdf(
    file: UploadFile = File(...),
    bank_name: str = Form(""),
    report_type: str = Form(""),
    report_title: str = Form(""),
    report_date: str = Form(""),
    introduction: str = Form(""),
    plot_description: str = Form(""),
    findings: str = Form(""),
    conclusion: str = Form(""),
    plot_diagram: Optional[UploadFile] = File(None),
    satellite_view: Optional[UploadFile] = File(None),
    road_map: Optional[UploadFile] = File(None),
    hybrid_view: Optional[UploadFile] = File(None),
    terrain_view: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    """
    Builds the report PDF from an uploaded KML plus the wizard's form values.
    An uploaded Plot Diagram replaces the polygon rendered from the KML.
    Saves a copy under REPORTS_DIR and records a PlotReport row.
    Streams the PDF back to the client.
    """
    session = ExportSession()
    result = session.load(await read_kml_upload(file), source_name=file.filename)

    uploads = (plot_diagram, satellite_view, road_map, hybrid_view, terrain_view)
    for label, upload in zip(IMAGE_LABELS, uploads):
        if upload is not None and upload.filename:
            session.set_preview(label, await upload.read())

    narrative = ReportNarrative(
        bank_name=bank_name, report_type=report_type, report_title=report_title,
        report_date=report_date, introduction=introduction,
        plot_description=plot_description, findings=findings, conclusion=conclusion,
    )
    plot_image = await session.plot_image()
    pdf_bytes = build_report_pdf(result, narrative, plot_image, session.previews)

    # ---- Persist & respond ----
    plot_number = result.fields["PlotNumber"]
    _ensure_dir(settings.reports_dir)
    fname = f"PlotReport_{_safe_name(plot_number)}_{datetime.now().strftime('%Y%m%d-%H%M%S-%f')}.pdf"
    saved_path = os.path.join(settings.reports_dir, fname)
    with open(saved_path, "wb") as f:
        f.write(pdf_bytes)

    db.add(PlotReport(plot_number=plot_number, file_path=saved_path, report_type="pdf",
                      source_tier=result.coordinate.source_tier.value))
    db.commit()

    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'inline; filename="PlotReport.pdf"',
            "X-Report-Path": saved_path,
            "X-Plot-Image": "embedded" if plot_image else "omitted",
        },
    )
