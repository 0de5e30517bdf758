"""
=============================================================================
HTTPMODEL - Immutable HTTP Messages, Middleware and a Small Client
=============================================================================

A transport-agnostic model of HTTP for Python applications: requests,
responses, URIs, streams and uploads as immutable values, a middleware
chain to process server requests, and a synchronous client to send
requests over the network.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        HTTPMODEL LAYERS                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. VALUE OBJECTS                                                  │
    │      - Uri (parse/build, default port + host normalization)         │
    │      - Stream (bytes in memory or on disk)                          │
    │      - Request, Response, ServerRequest (copy-on-write)             │
    │      - UploadedFile (one-shot move)                                 │
    │                                                                      │
    │   2. SERVER-SIDE PROCESSING                                         │
    │      - RequestHandler / Middleware roles                            │
    │      - HasMiddleware: include/exclude lists → dispatch chain        │
    │      - Container: resolves middleware named by type                 │
    │                                                                      │
    │   3. EDGES                                                          │
    │      - Factory: builds messages, WSGI environ → ServerRequest       │
    │      - Client: Request → network → Response (urllib)                │
    │      - Cookie / CookieJar: Set-Cookie building                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpmodel/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI (python -m httpmodel GET https://...)
    ├── config.py            # ClientConfig dataclass
    ├── exceptions.py        # Exception hierarchy
    ├── logging_utils.py     # CLI logging setup
    ├── http/                # Message model
    │   ├── uri.py, stream.py, message.py
    │   ├── request.py, response.py, server_request.py
    │   ├── uploaded_file.py, cookie.py, status_codes.py
    │   ├── factory.py, client.py, mime_types.py
    └── middleware/          # Dispatch chain
        ├── base.py          # Handler/middleware roles + adapters
        ├── stack.py         # HasMiddleware
        ├── resolver.py      # Container
        └── logging.py       # Access-log middleware

=============================================================================
QUICK START
=============================================================================

    from httpmodel import HasMiddleware, Response, ServerRequest
    from httpmodel.middleware import LoggingMiddleware, function_middleware

    @function_middleware
    def powered_by(request, handler):
        return handler.handle(request).with_header("X-Powered-By", "httpmodel")

    class App(HasMiddleware):
        pass

    app = App().with_middleware([LoggingMiddleware(), powered_by])
    response = app.dispatch(
        ServerRequest("GET", "http://localhost/"),
        None,
        lambda request: Response(200, body="hello"),
    )

=============================================================================
"""

__version__ = "1.0.0"

from .exceptions import (
    ClientConfigurationError,
    ClientError,
    HttpModelError,
    ResolutionError,
    StreamError,
    TransportError,
    ValidationError,
)
from .config import ClientConfig
from .http import (
    Client,
    Cookie,
    CookieJar,
    Factory,
    HTTPStatus,
    Message,
    Request,
    Response,
    ServerRequest,
    Stream,
    UploadedFile,
    UploadErrorCode,
    Uri,
)
from .middleware import (
    CallableMiddleware,
    CallableRequestHandler,
    Container,
    HasMiddleware,
    Middleware,
    MiddlewareHandler,
    RequestHandler,
)

__all__ = [
    "__version__",
    # Errors
    "HttpModelError",
    "ValidationError",
    "StreamError",
    "ResolutionError",
    "ClientError",
    "ClientConfigurationError",
    "TransportError",
    # Config
    "ClientConfig",
    # Messages
    "Message",
    "Request",
    "Response",
    "ServerRequest",
    "Stream",
    "UploadedFile",
    "UploadErrorCode",
    "Uri",
    "HTTPStatus",
    "Cookie",
    "CookieJar",
    "Factory",
    "Client",
    # Middleware
    "RequestHandler",
    "Middleware",
    "MiddlewareHandler",
    "CallableMiddleware",
    "CallableRequestHandler",
    "HasMiddleware",
    "Container",
]
