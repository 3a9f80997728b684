from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.config import get_settings
from src.infrastructure.api.errors import add_exception_handlers
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.admin_routes import router as admin_router
from src.infrastructure.api.routes.auth_routes import router as auth_router
from src.infrastructure.api.routes.profile_routes import router as profile_router
from src.infrastructure.app_logging import setup_logger


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logger(settings.log_level)

    app = FastAPI(
        title="CalcPortal Backend",
        version=settings.version,
        description="""
        ## CalcPortal Backend API

        Account services behind the CalcPortal calculator catalog: registration,
        sign-in, profiles and the admin area. Supabase provides auth and the
        profile database.

        ### Features
        - **Registration**: Creates the auth account and the profile record
          together, or neither
        - **First admin**: The very first registrant may claim the single admin
          role; later admin requests are refused
        - **Sessions**: Sign-in stores the access token in a session cookie
          that is forwarded to guarded pages
        - **Guarded pages**: `/admin` and `/profile` redirect unauthorised
          visitors instead of erroring

        ### Authentication
        API endpoints under `/auth` that act on the current user take a Bearer
        token in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        - **400 / 403 / 409 / 500** on `/auth/register`: `{"code", "message"}`
          with code `invalid-argument`, `permission-denied`, `already-exists`
          or `internal`
        - **401 Unauthorized**: Missing or invalid authentication token
        - **307 Temporary Redirect**: Guarded page without a valid session
        - **422 Unprocessable Entity**: Validation error in request body
        """,
        contact={
            "name": "CalcPortal Team",
            "email": "support@calcportal.app",
        },
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app, settings)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the CalcPortal API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": settings.app_name, "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(profile_router)
    return app


app = create_app()
