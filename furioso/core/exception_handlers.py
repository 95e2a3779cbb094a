import logging
import traceback
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from .exceptions import BaseAPIException, InternalServerError, StorageUnavailableError

logger = logging.getLogger("furioso")


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {
        "method": request.method,
        "url": str(request.url),
        "client": client,
        "request_id": getattr(request.state, "request_id", "-"),
    }


def _prefix(ctx: Dict[str, Any]) -> str:
    return f"{ctx['method']} {ctx['url']} from {ctx['client']} (req={ctx['request_id']})"


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    ctx = _request_context(request)
    msg = f"[{type(exc).__name__}] {_prefix(ctx)} -> {exc.status_code}: {exc.error_code} {exc.message}"
    if exc.status_code >= 500:
        logger.error(msg)
    else:
        logger.warning(msg)
    return JSONResponse(status_code=exc.status_code, content=exc.detail)  # type: ignore[arg-type]


async def handle_http_exception(request: Request, exc: HTTPException):
    ctx = _request_context(request)

    error_msg = f"[HTTPException] {_prefix(ctx)} -> {exc.status_code}: {exc.detail}"
    if exc.status_code >= 500:
        # 500번대 에러는 스택 트레이스 포함
        tb_str = "".join(traceback.format_tb(exc.__traceback__))
        logger.error(f"{error_msg}\n\nStack Trace:\n{tb_str}")
    else:
        logger.warning(error_msg)

    content = {
        "success": False,
        "error": {
            "code": "HTTP_ERROR",
            "message": str(exc.detail),
            "details": {},
        },
    }
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    ctx = _request_context(request)
    logger.warning(f"[ValidationError] {_prefix(ctx)} -> 422: {exc.errors()}")
    content = {
        "success": False,
        "error": {
            "code": "VALIDATION_001",
            "message": "Validation failed",
            "details": {"errors": jsonable_errors(exc)},
        },
    }
    return JSONResponse(status_code=422, content=content)


def jsonable_errors(exc: RequestValidationError) -> list:
    """pydantic 에러의 ctx에 담긴 예외 객체를 문자열로 변환"""
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors


async def handle_operational_error(request: Request, exc: OperationalError):
    """세션 밖으로 새어 나온 DB 연결 오류는 503으로 응답 (재시도 가능)"""
    ctx = _request_context(request)
    logger.error(f"[OperationalError] {_prefix(ctx)} -> 503: {exc.orig!r}")
    unavailable = StorageUnavailableError()
    return JSONResponse(status_code=unavailable.status_code, content=unavailable.detail)  # type: ignore[arg-type]


async def handle_unexpected_error(request: Request, exc: Exception):
    ctx = _request_context(request)

    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"\n{'=' * 80}\n"
        f"[Unhandled Error] {_prefix(ctx)}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {str(exc)}\n\n"
        f"Full Stack Trace:\n{tb_str}"
        f"{'=' * 80}"
    )

    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)  # type: ignore[arg-type]


def register_exception_handlers(app: FastAPI) -> None:
    # BaseAPIException은 HTTPException 하위 클래스이므로 먼저 등록
    app.add_exception_handler(BaseAPIException, handle_base_api_exception)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(OperationalError, handle_operational_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
