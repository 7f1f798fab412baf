"""
Error taxonomy for the API.

Every error is an HTTPException so routes and services can raise them the same
way; the handlers registered in main.py render them as {"message": ...}.
"""

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    def __init__(self, message: str = "Invalid request"):
        super().__init__(status_code=400, detail=message)


class AuthError(HTTPException):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(status_code=401, detail=message)


class AuthorizationError(HTTPException):
    def __init__(self, message: str = "User not authorized"):
        super().__init__(status_code=403, detail=message)


class NotFoundError(HTTPException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=404, detail=message)


class FederationUnavailableError(HTTPException):
    def __init__(
        self,
        message: str = (
            "Google OAuth is not configured on the server. Please set GOOGLE_CLIENT_ID "
            "and GOOGLE_CLIENT_SECRET environment variables."
        ),
    ):
        super().__init__(status_code=501, detail=message)


class MediaUnavailableError(HTTPException):
    def __init__(
        self,
        message: str = (
            "Media hosting is not configured on the server. Please set CLOUDINARY_NAME, "
            "CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET environment variables."
        ),
    ):
        super().__init__(status_code=501, detail=message)


class UpstreamError(HTTPException):
    def __init__(self, message: str = "Upstream service error"):
        super().__init__(status_code=502, detail=message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "msg": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"message": "Something went wrong!"}
    if request.app.state.context.settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)
