"""
Application error types and the FastAPI handlers that turn them into responses.

Three kinds of failure reach a client:
1. Form validation errors - field-specific, raised before any write
2. Write errors - database or storage failures, reported generically
3. Admin code errors - a wrong shared access code
"""
import logging
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("app")


class FieldViolation:
    """One broken rule on one form field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}

    def __repr__(self) -> str:
        return f"FieldViolation({self.field!r}, {self.message!r})"


class FormValidationError(Exception):
    def __init__(self, violations: List[FieldViolation]):
        self.violations = violations
        super().__init__(self.first_message)

    @property
    def first_message(self) -> str:
        return self.violations[0].message if self.violations else "Invalid input"


class WriteError(Exception):
    """A write against the database or object storage failed.

    ``message`` is what the user sees; the underlying cause is kept on
    ``__cause__`` and logged, never returned.
    """

    def __init__(self, message: str = "Could not save changes"):
        self.message = message
        super().__init__(message)


class AdminCodeError(Exception):
    def __init__(self, message: str = "Incorrect code"):
        self.message = message
        super().__init__(message)


async def form_validation_exception_handler(request: Request, exc: FormValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": exc.first_message,
            "errors": [v.to_dict() for v in exc.violations],
        },
    )


async def write_exception_handler(request: Request, exc: WriteError):
    logger.error(f"Write failed on {request.method} {request.url.path}: {exc.__cause__ or exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": exc.message},
    )


async def admin_code_exception_handler(request: Request, exc: AdminCodeError):
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FormValidationError, form_validation_exception_handler)
    app.add_exception_handler(WriteError, write_exception_handler)
    app.add_exception_handler(AdminCodeError, admin_code_exception_handler)
