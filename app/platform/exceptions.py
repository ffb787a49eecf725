from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation failed"

    first = errors[0]
    if first.get("type") == "missing":
        fields = [str(e["loc"][-1]) for e in errors if e.get("type") == "missing"]
        return f"Missing required field(s): {', '.join(fields)}"

    # Custom validators raise ValueError("..."); pydantic prefixes it
    msg = str(first.get("msg", "Validation failed"))
    return msg.removeprefix("Value error, ")


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(
            message=str(exc.detail) or "Error",
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message=_validation_message(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        data = None if settings.is_production else {"error": str(exc)}
        return api_response(
            message="Server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            data=data,
        )
