from __future__ import annotations

import re
from typing import List, Pattern, Tuple

from prometheus_client import Counter, Histogram

# Applied in order; record keys first so composite keys ("jp,13") collapse whole.
_PATH_RULES: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"^(/api/v1/ownership/models/[^/]+/records)/[^/]+"), r"\1/:pk"),
    (re.compile(r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"), "/:uuid"),
    (re.compile(r"/\d+"), "/:id"),
]


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels.

    Model names stay as they are: there is one per mapped class.
    """
    p = path or "/"
    for pattern, repl in _PATH_RULES:
        p = pattern.sub(repl, p)
    return p


HTTP_REQUESTS_TOTAL = Counter(
    "ownerchain_http_requests_total",
    "HTTP requests served by the ownership API",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "ownerchain_http_request_duration_seconds",
    "Ownership API request latency in seconds",
    ["method", "path"],
)
