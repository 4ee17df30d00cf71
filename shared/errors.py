"""
Domain errors raised by the service layer.

Every error carries the exact human-readable reason shown to the caller and
the HTTP status it maps to. Routers never build their own messages; the
handler registered by `register_error_handlers` turns these into
`{"detail": message}` responses.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class PaymentProcessorError(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(DomainError, domain_error_handler)
