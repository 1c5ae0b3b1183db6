"""Request logging middleware."""

import time
import uuid
from typing import Any, Dict, Optional

from flask import Flask, Response, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"


def current_request_id() -> Optional[str]:
    """Return the id of the request being handled, if any."""

    if not has_request_context():
        return None
    return getattr(g, "request_id", None)


def setup_request_logging(app: Flask) -> None:
    """Attach request id and access logging hooks to the provided Flask application."""

    @app.before_request
    def _start_timer() -> None:
        g.request_started_at = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id:
            request_id = uuid.uuid4().hex
        g.request_id = request_id

    @app.after_request
    def _log_request(response: Response) -> Response:
        start = getattr(g, "request_started_at", None)
        duration_ms = None
        if start is not None:
            duration_ms = (time.perf_counter() - start) * 1000

        log_record: Dict[str, Any] = {
            "method": request.method,
            "path": request.full_path.rstrip("?") or request.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 3) if duration_ms is not None else None,
            "request_id": getattr(g, "request_id", None),
            "route": getattr(request.url_rule, "rule", request.path),
            "user_agent": request.headers.get("User-Agent"),
        }
        app.logger.info("request completed", extra=log_record)

        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers.setdefault(REQUEST_ID_HEADER, request_id)

        return response
