"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

Server-side request processing as a chain of middleware.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     MIDDLEWARE COMPONENTS                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  base.py      RequestHandler, Middleware, MiddlewareHandler,        │
    │               CallableRequestHandler, CallableMiddleware,           │
    │               function_middleware                                   │
    │                                                                      │
    │  stack.py     HasMiddleware (include/exclude lists, dispatch)       │
    │                                                                      │
    │  resolver.py  Container (type identifier → instance)                │
    │                                                                      │
    │  logging.py   LoggingMiddleware (access log, X-Request-ID)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
USAGE
=============================================================================

    from httpmodel.middleware import HasMiddleware, LoggingMiddleware, Container

    class Route(HasMiddleware):
        pass

    route = Route().with_middleware([LoggingMiddleware, "myapp.auth.Auth"])
    container = Container().register("myapp.auth.Auth", lambda: Auth(secret))
    response = route.dispatch(request, container, controller)

=============================================================================
"""

from .base import (
    CallableMiddleware,
    CallableRequestHandler,
    Middleware,
    MiddlewareHandler,
    RequestHandler,
    function_middleware,
)
from .resolver import Container, qualified_name, type_name_of
from .stack import HasMiddleware, MiddlewareEntry
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "RequestHandler",
    "Middleware",
    "MiddlewareHandler",
    "CallableRequestHandler",
    "CallableMiddleware",
    "function_middleware",
    "HasMiddleware",
    "MiddlewareEntry",
    "Container",
    "qualified_name",
    "type_name_of",
    "LoggingMiddleware",
    "RequestLog",
]
