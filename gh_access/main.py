from fastapi import FastAPI

from gh_access.core.config import get_settings
from gh_access.core.middleware import CorsHeadersMiddleware, RequestIdMiddleware
from gh_access.github.errors import GitHubAppError
from gh_access.github.router import github_app_error_handler, unhandled_error_handler
from gh_access.github.router import router as github_app_router
from gh_access.issues.router import router as issues_router
from gh_access.webhooks.router import router as webhooks_router


def create_app() -> FastAPI:
    settings = get_settings()

    _app = FastAPI(
        title="GitHub App Access API",
        description="GitHub App authentication and installation-scoped repository access",
        version="0.1.0",
    )

    # ---------------------------------------------------------------------------
    # Error mapping: every GitHubAppError becomes a typed JSON response, and
    # anything else a 500 {error} that still carries the CORS headers
    # ---------------------------------------------------------------------------
    _app.state.cors_allow_origin = settings.cors_allow_origin
    _app.add_exception_handler(GitHubAppError, github_app_error_handler)
    _app.add_exception_handler(Exception, unhandled_error_handler)

    # ---------------------------------------------------------------------------
    # Middleware (registered innermost → outermost; the last one added wraps all)
    # ---------------------------------------------------------------------------

    # CORS headers on every response, OPTIONS answered before routing
    _app.add_middleware(CorsHeadersMiddleware, allow_origin=settings.cors_allow_origin)

    # Request ID: inject / forward X-Request-ID and bind to ContextVar
    _app.add_middleware(RequestIdMiddleware)

    # ---------------------------------------------------------------------------
    # Sentry: initialised here so it captures startup errors too
    # ---------------------------------------------------------------------------
    from gh_access.core.sentry import init_sentry

    init_sentry(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
    )

    # ---------------------------------------------------------------------------
    # Logging: configure structlog before any routers log anything
    # ---------------------------------------------------------------------------
    from gh_access.core.logging import configure_structlog

    configure_structlog(debug=settings.debug)

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    @_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    _app.include_router(github_app_router)
    _app.include_router(webhooks_router)
    _app.include_router(issues_router)

    return _app


app = create_app()
