from __future__ import annotations

from typing import Callable

from fastapi import FastAPI
from sqlalchemy.orm import Session

from ownerchain.api.endpoints import health
from ownerchain.api.endpoints import metrics_export
from ownerchain.api.endpoints.ownership import router as ownership_router
from ownerchain.api.middleware.error_shaping import SafeErrorMiddleware
from ownerchain.api.middleware.request_context import RequestContextMiddleware
from ownerchain.core.ownership.registry import OwnershipRegistry


def create_app(
    registry: OwnershipRegistry,
    session_factory: Callable[[], Session],
) -> FastAPI:
    """Ownership introspection API over the models known to `registry`.

    `session_factory` is called once per request; install the ownership gate
    on it to guard writes made through the same factory elsewhere.
    """
    app = FastAPI(
        title="ownerchain",
        version="0.1.0",
    )
    app.state.ownership_registry = registry
    app.state.session_factory = session_factory

    # ------------------------------------------------------------
    # Middleware stack (ORDER MATTERS)
    # Starlette reverses add_middleware order: the LAST call = OUTERMOST wrapper.
    #   SafeErrorMiddleware -> RequestContext -> handler
    # ------------------------------------------------------------
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SafeErrorMiddleware)

    app.include_router(health.router)
    app.include_router(metrics_export.router)
    app.include_router(ownership_router)

    return app
