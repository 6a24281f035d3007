# plotreport/core/exceptions.py
import logging

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """The uploaded document is not well-formed markup. Nothing was extracted from it."""

    def __init__(self, message: str = "Failed to parse KML file. Please upload a valid KML file."):
        super().__init__(message)
        self.message = message


async def validation_exception_handler(request, exc: RequestValidationError):
    logger.info("validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=422,
                        content={"detail": exc.errors()})


async def parse_error_handler(request, exc: ParseError):
    return JSONResponse(status_code=HTTP_400_BAD_REQUEST,
                        content={"detail": exc.message, "error": "parse_error"})
