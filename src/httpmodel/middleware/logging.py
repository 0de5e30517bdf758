"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Times every request passing through the stack and writes one access-log
line per request on the ``httpmodel.access`` logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (Apache-style, default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - - [10/Jun/2026:10:55:36 +0000] "GET /api?x=1" 200 12 3.10ms │
    └─────────────────────────────────────────────────────────────────────┘

    JSON:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/api",        │
    │  "query": "x=1", "client_ip": "10.0.0.7", "status_code": 200, ...} │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST IDS
=============================================================================

Each request gets an id: the incoming X-Request-ID header when the caller
sent one, otherwise a fresh 8-character UUID prefix. It travels:

    inbound   ──►  request attribute "request_id"   (inner handlers)
    outbound  ◄──  response header  "X-Request-ID"  (the client)

Requests and responses are immutable, so both are rebuilt with with_*()
rather than modified in place.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from ..http.response import Response
from ..http.server_request import ServerRequest
from .base import Middleware, RequestHandler


# Configure separately from the library loggers, e.g.
#   logging.getLogger("httpmodel.access").addHandler(file_handler)
logger = logging.getLogger("httpmodel.access")

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_ATTRIBUTE = "request_id"


@dataclass
class RequestLog:
    """One access-log record."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access-log middleware.

    Put it FIRST in the stack so it sees requests that later middleware
    rejects, and so its timing covers the whole chain.

    Usage:
        app.with_middleware(LoggingMiddleware(log_format="json",
                                              skip_paths=["/health"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json"
            include_request_id: Add X-Request-ID to the response
            log_level: Level the access line is logged at
            skip_paths: Paths that are never logged (health checks)
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def process(self, request: ServerRequest, handler: RequestHandler) -> Response:
        request_id = request.get_header_line(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request = request.with_attribute(REQUEST_ID_ATTRIBUTE, request_id)
        path = request.get_uri().get_path() or "/"

        start_time = time.perf_counter()
        try:
            response = handler.handle(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.get_method()} {path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms) [{request_id}]"
            )
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000

        if path not in self.skip_paths:
            self._emit(self._build_log(request, response, request_id, path, duration_ms))

        if self.include_request_id:
            response = response.with_header(REQUEST_ID_HEADER, request_id)
        return response

    def _build_log(
        self,
        request: ServerRequest,
        response: Response,
        request_id: str,
        path: str,
        duration_ms: float,
    ) -> RequestLog:
        content_length = response.get_body().get_size()
        if content_length is None:
            header = response.get_header_line("Content-Length")
            content_length = int(header) if header.isdigit() else 0

        return RequestLog(
            request_id=request_id,
            method=request.get_method(),
            path=path,
            query=request.get_uri().get_query(),
            client_ip=str(request.get_server_params().get("REMOTE_ADDR", "-")),
            user_agent=request.get_header_line("User-Agent") or "-",
            status_code=response.get_status_code(),
            content_length=content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _emit(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
