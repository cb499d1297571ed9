from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ownerchain.api.observability.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    normalize_path,
)

log = logging.getLogger("ownerchain.request")

_MODEL_IN_PATH = re.compile(r"^/api/v1/ownership/models/([^/]+)")


def _model_from_path(path: str) -> Optional[str]:
    m = _MODEL_IN_PATH.match(path)
    return m.group(1) if m else None


def _observe(request: Request, status: int, seconds: float) -> None:
    p = normalize_path(request.url.path)
    m = request.method.upper()
    HTTP_REQUESTS_TOTAL.labels(method=m, path=p, status=str(status)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method=m, path=p).observe(seconds)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request ID, owner header and one structured log line per API call.

    Adds:
      request.state.request_id
      request.state.owner_ref   (raw X-Owner-Id header, if any)
      response header: X-Request-Id
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = rid
        request.state.owner_ref = request.headers.get("x-owner-id")

        started = time.perf_counter()
        resp = await call_next(request)
        elapsed = time.perf_counter() - started

        resp.headers["X-Request-Id"] = rid
        _observe(request, resp.status_code, elapsed)

        if request.url.path.startswith("/api/"):
            log.info(
                "%s",
                {
                    "event": "request",
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "model": _model_from_path(request.url.path),
                    "owner": request.state.owner_ref,
                    "status_code": resp.status_code,
                    "duration_ms": int(elapsed * 1000),
                },
            )
        return resp
