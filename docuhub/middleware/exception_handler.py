"""Exception handler middleware for structured error responses."""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import DocuHubException, ErrorCode

logger = logging.getLogger(__name__)


async def docuhub_exception_handler(request: Request, exc: DocuHubException) -> JSONResponse:
    """
    Convert a DocuHubException into its JSON body and HTTP status.

    Client errors are logged at WARNING, server-side and upstream failures at ERROR.
    """
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"{exc.error_code.value}: {exc.message}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI's request validation failures in the same ``{error, message, details}`` shape, as 400."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    logger.warning(
        "VALIDATION_ERROR: request validation failed",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )
    first = errors[0] if errors else {"loc": [], "msg": "Invalid request"}
    return JSONResponse(
        status_code=400,
        content={
            "error": ErrorCode.VALIDATION_ERROR.value,
            "message": f"{'.'.join(first['loc'])}: {first['msg']}".lstrip(": "),
            "details": {"errors": errors},
        },
    )
