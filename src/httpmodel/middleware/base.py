"""
=============================================================================
HANDLERS AND MIDDLEWARE
=============================================================================

The two roles of server-side request processing:

    RequestHandler   handle(request)           → Response
    Middleware       process(request, handler) → Response

A middleware receives the request and the NEXT handler. It may forward the
request, rewrite it first, rewrite the response afterwards, or answer on
its own without forwarding at all (short-circuit).

=============================================================================
CHAIN OF RESPONSIBILITY
=============================================================================

MiddlewareHandler glues one middleware to the handler after it, which
turns a list of middleware into a chain of handlers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   MiddlewareHandler(A, MiddlewareHandler(B, default))               │
    │                                                                      │
    │   Request ──► A.process ──► B.process ──► default.handle            │
    │                  │             │               │                    │
    │   Response ◄─────┴─────────────┴───────────────┘                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The chain is built from the LAST middleware backwards, so the first one
in the list ends up outermost. HasMiddleware (stack.py) does this.

=============================================================================
CALLABLE ADAPTERS
=============================================================================

Plain functions work too:

    handler = CallableRequestHandler(lambda request: Response(204))

    @function_middleware
    def stamp(request, handler):
        return handler.handle(request).with_header("X-Stamp", "1")

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..http.response import Response
from ..http.server_request import ServerRequest


class RequestHandler(ABC):
    """Turns a server request into a response."""

    @abstractmethod
    def handle(self, request: ServerRequest) -> Response:
        pass


class Middleware(ABC):
    """
    Abstract base class for middleware.

    =========================================================================
    MIDDLEWARE ANATOMY
    =========================================================================

        class RequireJson(Middleware):
            def process(self, request, handler):
                # PRE-PROCESSING: validate, or short-circuit
                if request.get_header_line("Content-Type") != "application/json":
                    return Response(415)

                # CALL NEXT HANDLER
                response = handler.handle(request)

                # POST-PROCESSING: responses are immutable, so rebuild
                return response.with_header("X-Checked", "json")

    =========================================================================
    """

    @abstractmethod
    def process(self, request: ServerRequest, handler: RequestHandler) -> Response:
        """
        Process the request.

        Args:
            request: The incoming server request
            handler: The next handler in the chain

        Returns:
            A response, from ``handler.handle()`` or produced here
        """
        pass

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewareHandler(RequestHandler):
    """A handler that runs one middleware in front of the next handler."""

    def __init__(self, middleware: Middleware, handler: RequestHandler):
        self._middleware = middleware
        self._handler = handler

    @property
    def middleware(self) -> Middleware:
        return self._middleware

    @property
    def handler(self) -> RequestHandler:
        return self._handler

    def handle(self, request: ServerRequest) -> Response:
        return self._middleware.process(request, self._handler)


# =============================================================================
# CALLABLE ADAPTERS
# =============================================================================

class CallableRequestHandler(RequestHandler):
    """Wraps ``func(request) -> Response`` as a RequestHandler."""

    def __init__(self, func: Callable[[ServerRequest], Response]):
        if not callable(func):
            raise TypeError(f"Handler must be callable, {type(func).__name__} given")
        self._func = func

    def handle(self, request: ServerRequest) -> Response:
        response = self._func(request)
        if not isinstance(response, Response):
            raise TypeError(
                f"Request handler {getattr(self._func, '__name__', self._func)!r} "
                f"returned {type(response).__name__}, expected Response"
            )
        return response


class CallableMiddleware(Middleware):
    """
    Wraps ``func(request, handler) -> Response`` as Middleware.

    Usage:
        def add_header(request, handler):
            return handler.handle(request).with_header("X-Custom", "value")

        app.with_middleware(CallableMiddleware(add_header))
    """

    def __init__(
        self,
        func: Callable[[ServerRequest, RequestHandler], Response],
        name: Optional[str] = None,
    ):
        if not callable(func):
            raise TypeError(f"Middleware must be callable, {type(func).__name__} given")
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def process(self, request: ServerRequest, handler: RequestHandler) -> Response:
        """Delegate to the wrapped function."""
        return self._func(request, handler)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[ServerRequest, RequestHandler], Response]
) -> CallableMiddleware:
    """
    Decorator to create middleware from a function.

    Usage:
        @function_middleware
        def timing(request, handler):
            response = handler.handle(request)
            return response.with_header("X-Handled", "true")

        app.with_middleware(timing)
    """
    return CallableMiddleware(func)
