"""
Response envelope for game endpoints.

Services answer with ``{"success": bool, "message": str, ...}``. The router
wraps that into ``{success, message, data}``: the remaining keys become
``data`` and a rejected action answers 422 after the unit of work is rolled back.
"""

from datetime import date, datetime
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from ..exceptions import ActionRejected
from ..models.base import Base


def model_to_dict(obj: Base) -> dict[str, Any]:
    """Column values of an ORM row."""
    values: dict[str, Any] = {}
    for attr in inspect(obj).mapper.column_attrs:
        value = getattr(obj, attr.key)
        values[attr.key] = value.isoformat() if isinstance(value, (datetime, date)) else value
    return values


def _plain(value: Any) -> Any:
    if isinstance(value, Base):
        return model_to_dict(value)
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def respond(result: dict[str, Any], data: Any = None) -> JSONResponse:
    """
    Wrap a service result; ``data`` replaces the leftover result keys when given.

    A rejected result raises ``ActionRejected`` so the session rolls back;
    the error handlers turn it into the same envelope with status 422.
    """
    success = bool(result.get("success", True))
    if data is None:
        data = {key: value for key, value in result.items() if key not in ("success", "message")}
    body = jsonable_encoder({"success": success, "message": result.get("message", ""), "data": _plain(data)})
    if not success:
        raise ActionRejected(body)
    return JSONResponse(status_code=200, content=body)


def ok(data: Any, message: str = "") -> dict[str, Any]:
    """Envelope for read endpoints."""
    return jsonable_encoder({"success": True, "message": message, "data": _plain(data)})


def rejected(message: str) -> JSONResponse:
    return respond({"success": False, "message": message})
