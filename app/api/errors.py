# app/api/errors.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.domain.schemas import ErrorOut, FieldErrorOut
from app.utils import settings
from app.utils.logging import get_logger

logger = get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        #malformed body is rejected before any business logic, never retried
        details = [
            FieldErrorOut(
                field=".".join(str(part) for part in err["loc"][1:]),
                message=err["msg"],
            )
            for err in exc.errors()
        ]
        logger.info(f"Validation error on {request.method} {request.url.path}: {len(details)} field(s)")
        return JSONResponse(
            status_code=400,
            content=ErrorOut(error="Validation error", details=details).model_dump(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorOut(error=str(exc.detail)).model_dump(exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        message = "Internal server error" if settings.APP_ENV == "production" else str(exc)
        return JSONResponse(status_code=500, content=ErrorOut(error=message).model_dump(exclude_none=True))
