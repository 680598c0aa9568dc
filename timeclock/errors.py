from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class PunchDataError(Exception):
    """Base class for punch rows that cannot enter the reconstruction engine."""


class DuplicateEventError(PunchDataError):
    def __init__(self, event_id: str, worker_id: str | None = None):
        super().__init__(f"Duplicate punch event id: {event_id}")
        self.event_id = event_id
        self.worker_id = worker_id


class InvalidPunchRowError(PunchDataError):
    def __init__(self, reason: str, row: Any = None):
        super().__init__(reason)
        self.reason = reason
        self.row = row


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
