"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` for various conditions (survey not found,
stale chat cursor, answer already in flight).  Rather than catching these
in every route, global handlers inspect the message and pick the right
HTTP status code.

``StructuralError`` gets its own handler: its message describes the
question tree the client just sent, so it is returned verbatim.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from survey_flow.exceptions import StructuralError

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # FlowBusyError
    ("already in progress", 409),
    # Survey / submission / question id unknown
    ("not found", 404),
    # Chat cursor points at a question the answers have since hidden
    ("no longer visible", 409),
    # Chat cursor iteration beyond the current repetition count
    ("out of range", 409),
]


# --- Client-safe messages keyed by HTTP status code ---
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Conflicting request",
    400: "Invalid request",
}


async def structural_error_handler(request: Request, exc: StructuralError) -> JSONResponse:
    """Malformed question tree in the request body → 400 with the reason."""
    logger.warning("StructuralError at %s: %s", request.url, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    The raw exception message is logged server-side but never sent to the
    client.
    """
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (e.g. unknown library survey) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
