import httpx
from fastapi import FastAPI

from dashboard.api.routes.dashboard import router
from dashboard.core.cache import ResponseCache
from dashboard.core.middleware import DashboardRateLimitMiddleware
from dashboard.core.observability import configure_logging
from dashboard.core.observability import init_sentry
from dashboard.settings import Settings


def create_app(
    app_settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the dashboard application.

    The response cache lives on `app.state` and is shared across requests;
    everything else is created per request.
    """

    app_settings = app_settings or Settings()
    configure_logging(app_settings)
    init_sentry(app_settings)

    app = FastAPI(title="GitHub activity dashboard")
    app.state.settings = app_settings
    app.state.cache = ResponseCache(ttl_seconds=app_settings.cache_ttl_seconds)
    app.state.transport = transport

    app.add_middleware(
        DashboardRateLimitMiddleware,
        requests_per_window=app_settings.rate_limit_per_minute,
        window_seconds=app_settings.rate_limit_window_seconds,
    )
    app.include_router(router)
    return app


app = create_app()
