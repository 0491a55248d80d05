"""
Exception handlers for the realm API.

Every error leaves the server in the same envelope as a rejected game
action, ``{"success": false, "message": ...}``, with an ``error`` block
describing the failure for clients and logs.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..error_types import ErrorMessages, ErrorSeverity, ErrorType, create_standard_error_response
from ..exceptions import (
    ActionRejected,
    AuthorizationError,
    DatabaseError,
    GameLogicError,
    RealmError,
    ResourceNotFoundError,
    ValidationError,
)
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import create_context_from_request, wrap_third_party_exception

logger = get_logger(__name__)

REALM_ERROR_STATUS: list[tuple[type[RealmError], int, ErrorType]] = [
    (ResourceNotFoundError, 404, ErrorType.RESOURCE_NOT_FOUND),
    (AuthorizationError, 403, ErrorType.AUTHORIZATION_DENIED),
    (ValidationError, 422, ErrorType.VALIDATION_ERROR),
    (GameLogicError, 409, ErrorType.GAME_LOGIC_ERROR),
    (DatabaseError, 500, ErrorType.DATABASE_ERROR),
]

HTTP_ERROR_TYPES = {
    401: ErrorType.AUTHENTICATION_FAILED,
    403: ErrorType.AUTHORIZATION_DENIED,
    404: ErrorType.RESOURCE_NOT_FOUND,
    422: ErrorType.GAME_RULE_REJECTED,
}


def _classify(exc: RealmError) -> tuple[int, ErrorType]:
    for error_class, status_code, error_type in REALM_ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code, error_type
    return 500, ErrorType.INTERNAL_ERROR


def register_error_handlers(app: FastAPI, include_details: bool = False) -> None:
    """Attach the realm exception handlers to ``app``."""

    @app.exception_handler(ActionRejected)
    async def action_rejected_handler(request: Request, exc: ActionRejected) -> JSONResponse:
        logger.info("Action rejected", path=request.url.path, message=exc.body.get("message"))
        return JSONResponse(status_code=422, content=exc.body)

    @app.exception_handler(RealmError)
    async def realm_error_handler(request: Request, exc: RealmError) -> JSONResponse:
        status_code, error_type = _classify(exc)
        body = create_standard_error_response(
            error_type,
            exc.message,
            user_friendly=exc.user_friendly,
            details=exc.details if include_details else None,
            severity=ErrorSeverity.HIGH if status_code >= 500 else ErrorSeverity.MEDIUM,
        )
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error_type = HTTP_ERROR_TYPES.get(exc.status_code, ErrorType.INVALID_INPUT)
        message = exc.detail if isinstance(exc.detail, str) else ErrorMessages.INVALID_INPUT
        body = create_standard_error_response(error_type, message, severity=ErrorSeverity.LOW)
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Request validation failed", path=request.url.path, errors=len(exc.errors()))
        body = create_standard_error_response(
            ErrorType.VALIDATION_ERROR,
            ErrorMessages.INVALID_INPUT,
            details={"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]},
            severity=ErrorSeverity.LOW,
        )
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        context = create_context_from_request(request)
        wrapped = wrap_third_party_exception(exc, context)
        logger.error(
            "Unhandled exception",
            error_type=type(exc).__name__,
            mapped_to=type(wrapped).__name__,
            context=context.to_dict(),
            exc_info=True,
        )
        error_type = ErrorType.DATABASE_ERROR if isinstance(wrapped, DatabaseError) else ErrorType.INTERNAL_ERROR
        body = create_standard_error_response(
            error_type,
            str(exc) if include_details else ErrorMessages.INTERNAL_ERROR,
            user_friendly=ErrorMessages.INTERNAL_ERROR,
            details=wrapped.details if include_details else None,
            severity=ErrorSeverity.CRITICAL,
        )
        return JSONResponse(status_code=500, content=body)

    logger.info("Error handlers registered", include_details=include_details)
