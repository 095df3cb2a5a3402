"""Translate domain errors into HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core import (
    ConfigurationError,
    DecryptionError,
    NotFoundError,
    OAuthStateError,
    ProviderError,
    ValidationError,
    log_error,
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc) or "Not found")

    @app.exception_handler(ValidationError)
    def _invalid(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(OAuthStateError)
    def _bad_state(request: Request, exc: OAuthStateError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(ProviderError)
    def _provider(request: Request, exc: ProviderError) -> JSONResponse:
        if exc.status_code == 401:
            return _error(401, f"{exc.provider} authorization expired; reconnect the account.")
        return _error(502, str(exc))

    @app.exception_handler(DecryptionError)
    @app.exception_handler(ConfigurationError)
    def _fatal(request: Request, exc: Exception) -> JSONResponse:
        log_error(f"{request.method} {request.url.path}: {exc}")
        return _error(500, "Server configuration error.")
