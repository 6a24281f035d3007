from __future__ import annotations
import logging
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from plotreport.core.config import settings, configure_cors, configure_logging
from plotreport.core.exceptions import ParseError, parse_error_handler, validation_exception_handler
from plotreport.db.session import init_models

# Routers (import once, include once)
from plotreport.api.v1.kml import router as kml_router
from plotreport.api.v1.report_pdf import router as report_pdf_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
configure_cors(app)

# Global exception handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ParseError, parse_error_handler)


@app.on_event("startup")
def on_startup():
    """Create tables (reports are recorded in plot_reports)."""
    init_models()
    logger.info("%s started; reports go to %s", settings.app_name, settings.reports_dir)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


# Mount API v1 routers (once)
app.include_router(kml_router)
app.include_router(report_pdf_router)
