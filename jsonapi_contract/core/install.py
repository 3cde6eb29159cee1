"""Wire the JSON:API contract into a FastAPI application."""

from __future__ import annotations

from collections.abc import Awaitable
from collections.abc import Callable
import logging
from typing import Any

from fastapi import APIRouter
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Mount

from jsonapi_contract.core.config import JSONAPISettings
from jsonapi_contract.core.config import get_settings
from jsonapi_contract.core.errors import http_error_response
from jsonapi_contract.core.errors import register_error_handlers
from jsonapi_contract.core.media_type import MEDIA_TYPE
from jsonapi_contract.core.media_type import enforce_media_type
from jsonapi_contract.core.media_type import register_media_type
from jsonapi_contract.core.responses import JSONAPIResponse
from jsonapi_contract.core.responses import JSONAPIRoute

logger = logging.getLogger(__name__)

# Middleware that keeps cookie sessions or cross-site request state.
PROTECTION_MIDDLEWARE = frozenset({"SessionMiddleware", "CSRFMiddleware"})


class JSONAPIConfigurationError(RuntimeError):
    """Raised when an application cannot honour the JSON:API contract."""


class MediaTypeMiddleware(BaseHTTPMiddleware):
    """Reject requests that do not speak the JSON:API media type, before routing."""

    def __init__(self, app: Callable, settings: JSONAPISettings) -> None:
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        try:
            enforce_media_type(request)
        except StarletteHTTPException as exc:
            return http_error_response(request, self.settings, exc)
        return await call_next(request)


class JSONAPIRouter(APIRouter):
    """APIRouter whose routes produce the JSON:API media type by default."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("default_response_class", JSONAPIResponse)
        kwargs.setdefault("route_class", JSONAPIRoute)
        super().__init__(*args, **kwargs)


def _disable_html_docs(app: FastAPI) -> None:
    html_paths = {app.docs_url, app.redoc_url, app.swagger_ui_oauth2_redirect_url} - {None}
    app.router.routes[:] = [route for route in app.router.routes if getattr(route, "path", None) not in html_paths]
    app.docs_url = None
    app.redoc_url = None
    app.swagger_ui_oauth2_redirect_url = None


def _check_disabled_features(app: FastAPI, settings: JSONAPISettings) -> None:
    if not settings.static_enabled:
        for route in app.router.routes:
            if isinstance(route, Mount) and isinstance(route.app, StaticFiles):
                raise JSONAPIConfigurationError(f"Static files are mounted at {route.path!r}")

    if not settings.protection_enabled:
        for middleware in app.user_middleware:
            name = getattr(middleware.cls, "__name__", "")
            if name in PROTECTION_MIDDLEWARE:
                raise JSONAPIConfigurationError(f"{name} is not supported by a JSON:API service")


def install_jsonapi(app: FastAPI, settings: JSONAPISettings | None = None) -> FastAPI:
    """Apply the JSON:API defaults to ``app``.

    Call this before any route is added: the default response and route
    classes are picked up when a route is registered, so earlier routes keep
    the framework defaults. Routers included later should be
    :class:`JSONAPIRouter` instances for the same reason.
    """

    settings = settings or get_settings()
    logger.info("Installing JSON:API defaults with settings=%s", settings.safe_for_logging())

    _check_disabled_features(app, settings)
    _disable_html_docs(app)
    # Unhandled exceptions always go through the registered handler, never the debug page.
    app.debug = False

    register_media_type(app, settings.media_type_alias, MEDIA_TYPE)
    app.state.jsonapi_settings = settings

    app.add_middleware(MediaTypeMiddleware, settings=settings)
    app.router.default_response_class = JSONAPIResponse
    app.router.route_class = JSONAPIRoute

    register_error_handlers(app, settings)
    return app
