import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from schemas.common import ErrorDetail, ErrorResponse
from services.errors import GradeServiceError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def add_error_handlers(app: FastAPI):
    @app.exception_handler(GradeServiceError)
    async def grade_service_exception_handler(request: Request, exc: GradeServiceError):
        logger.warning(f"성적 서비스 오류 {request.method} {request.url.path}: {exc.message}")
        return _error_response(502, "UPSTREAM_ERROR", exc.message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"처리되지 않은 오류 {request.method} {request.url.path}")
        return _error_response(500, "INTERNAL_ERROR", str(exc))
