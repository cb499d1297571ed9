from __future__ import annotations

import logging
import traceback
from typing import Callable, Optional, Tuple, Type

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from ownerchain.core.ownership.errors import (
    ConfigurationError,
    DataIntegrityError,
    InvalidArgumentError,
    OwnershipError,
    OwnershipRejected,
    UnknownModelError,
)

log = logging.getLogger("ownerchain.errors")

# First match wins: subclasses before their bases.
_STATUS: Tuple[Tuple[Type[OwnershipError], int], ...] = (
    (UnknownModelError, 404),
    (ConfigurationError, 500),
    (InvalidArgumentError, 400),
    (DataIntegrityError, 409),
    (OwnershipRejected, 409),
)


def _status_for(exc: OwnershipError) -> int:
    for cls, status in _STATUS:
        if isinstance(exc, cls):
            return status
    return 500


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    - Ownership errors become JSON errors with their message and a status
    - Anything else is a 500 without stack traces
    - Preserve request_id if present
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except OwnershipError as e:
            status = _status_for(e)
            log.warning("Ownership error: %s status=%s path=%s", e, status, request.url.path)
            return self._respond(request, status, {"detail": str(e), "error": type(e).__name__})
        except Exception as e:
            log.error(
                "Unhandled error: %s rid=%s path=%s\n%s",
                str(e),
                self._request_id(request),
                request.url.path,
                traceback.format_exc(),
            )
            return self._respond(request, 500, {"detail": "Internal Server Error"})

    @staticmethod
    def _request_id(request: Request) -> Optional[str]:
        return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")

    def _respond(self, request: Request, status: int, payload: dict) -> JSONResponse:
        rid = self._request_id(request)
        if rid:
            payload["request_id"] = rid
        return JSONResponse(status_code=status, content=payload)
