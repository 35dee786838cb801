from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logger import get_logger
from app.llm.service.errors import ProxyError

logger = get_logger("ExceptionHandlers")


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the service as JSON: ``{error, details?, tip?}``."""

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error}: {exc.details}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Convert HTTPException to standardized error format"""
        content = {"error": exc.detail if isinstance(exc.detail, str) else "Request failed"}
        if exc.status_code == 405:
            content = {"error": "Method not allowed"}
        elif not isinstance(exc.detail, str):
            content["details"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        issues = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": "Bad Request", "details": issues})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "details": exc.__class__.__name__},
        )
