from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from src.application.use_cases.create_account import MISSING_FIELDS_MESSAGE
from src.domain.exceptions import (
    AlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    PermissionDeniedError,
    ProvisioningError,
)

# Route names whose errors must stay inside the provisioning taxonomy.
PROVISIONING_ROUTES = ("register",)

_STATUS_BY_ERROR: dict[type[ProvisioningError], int] = {
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class GuardRedirect(Exception):
    """Raised by page guards to send the browser elsewhere."""

    def __init__(self, location: str) -> None:
        super().__init__(location)
        self.location = location


def provisioning_error_response(exc: ProvisioningError) -> JSONResponse:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=status_code, content={"code": exc.code, "message": exc.message})


def validation_message(exc: RequestValidationError) -> str:
    """Name the offending body fields; a missing or unparsable body has none."""
    fields = sorted(
        {
            err["loc"][-1]
            for err in exc.errors()
            if len(err.get("loc", ())) > 1 and isinstance(err["loc"][-1], str)
        }
    )
    if not fields:
        return MISSING_FIELDS_MESSAGE
    return f"Invalid value for: {', '.join(fields)}."


def _is_provisioning_route(request: Request) -> bool:
    for name in PROVISIONING_ROUTES:
        if request.url.path == request.app.url_path_for(name):
            return True
    return False


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProvisioningError)
    async def _provisioning_error(request: Request, exc: ProvisioningError) -> JSONResponse:
        return provisioning_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        if _is_provisioning_route(request):
            return provisioning_error_response(InvalidArgumentError(validation_message(exc)))
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(GuardRedirect)
    async def _guard_redirect(request: Request, exc: GuardRedirect) -> RedirectResponse:
        return RedirectResponse(url=exc.location, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
