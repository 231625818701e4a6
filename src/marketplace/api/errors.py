"""HTTP error mapping.

Validation errors become 400 through Protean's FastAPI integration.
Missing records become 404 and access violations 403. Anything else is a
500 with a generic body; the details only go to the log.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError
from protean.integrations.fastapi import register_exception_handlers

from marketplace.exceptions import AccessDenied

logger = structlog.get_logger(__name__)


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Not found"})


async def _access_denied(request: Request, exc: AccessDenied) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": exc.message})


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error while serving request",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(AccessDenied, _access_denied)
    app.add_exception_handler(Exception, _unexpected)
