"""
=============================================================================
MIDDLEWARE STACK
=============================================================================

HasMiddleware is a mixin for anything that owns a middleware stack: an
application, a route, a route group. It keeps two lists and derives the
effective stack from them:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   include  [Session, Auth, Csrf, Cors]    with_middleware(...)       │
    │   exclude  [Csrf]                         without_middleware(...)    │
    │   ─────────────────────────────────────────────────────────────      │
    │   stack    [Session, Auth, Cors]          include - exclude          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A route can therefore inherit a group's middleware and drop one of them
without knowing how the group was assembled.

=============================================================================
ENTRY MATCHING
=============================================================================

Entries are compared by TYPE NAME, case-insensitively:

    - a class          → "module.QualName"
    - a string         → taken as the type name ("myapp.auth.Auth")
    - an instance      → the qualified name of its class

So excluding a class removes every instance of it as well. Plain functions
are wrapped in CallableMiddleware when added, which means excluding
CallableMiddleware removes every function middleware at once.

=============================================================================
DISPATCH
=============================================================================

    stack [A, B, C], default handler D

    chain = D
    chain = MiddlewareHandler(C, chain)
    chain = MiddlewareHandler(B, chain)
    chain = MiddlewareHandler(A, chain)

    chain.handle(request)  ──►  A → B → C → D

Type identifiers are handed to the resolver when the chain is built.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Union

from ..exceptions import ResolutionError, ValidationError
from ..http.response import Response
from ..http.server_request import ServerRequest
from .base import CallableMiddleware, CallableRequestHandler, Middleware, MiddlewareHandler, RequestHandler
from .resolver import type_name_of


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MiddlewareEntry:
    """
    One include/exclude list entry: a ready instance OR a type identifier.

    Exactly one of ``instance`` and ``identifier`` is set.
    """

    instance: Optional[Any] = None
    identifier: Union[type, str, None] = None

    @classmethod
    def of(cls, value: Any) -> "MiddlewareEntry":
        if isinstance(value, MiddlewareEntry):
            return value
        if isinstance(value, (type, str)):
            if isinstance(value, str) and value == "":
                raise ValidationError("Middleware identifier cannot be empty")
            return cls(identifier=value)
        if isinstance(value, Middleware) or hasattr(value, "process"):
            return cls(instance=value)
        if callable(value):
            return cls(instance=CallableMiddleware(value))
        raise ValidationError(
            f"Middleware must be an instance, a class, a dotted path or a callable, "
            f"{type(value).__name__} given"
        )

    @property
    def value(self) -> Any:
        return self.instance if self.instance is not None else self.identifier

    @property
    def type_name(self) -> str:
        return type_name_of(self.value)

    def matches(self, other: "MiddlewareEntry") -> bool:
        return self.type_name.lower() == other.type_name.lower()


MiddlewareSpec = Union[Any, Iterable[Any]]


class HasMiddleware:
    """
    Mixin adding include/exclude middleware lists and dispatch.

    Usage:
        class Route(HasMiddleware):
            ...

        route = Route().with_middleware([SessionMiddleware, AuthMiddleware])
        route.without_middleware(AuthMiddleware)
        response = route.dispatch(request, container, controller)
    """

    # Class-level defaults; the first mutation gives each instance its own lists.
    _middleware_with: List[MiddlewareEntry] = []
    _middleware_without: List[MiddlewareEntry] = []

    @staticmethod
    def _entries(middleware: MiddlewareSpec) -> List[MiddlewareEntry]:
        if isinstance(middleware, (list, tuple)):
            return [MiddlewareEntry.of(item) for item in middleware]
        return [MiddlewareEntry.of(middleware)]

    def with_middleware(self, middleware: MiddlewareSpec):
        """Append one entry or a list of entries to the include list."""
        entries = self._entries(middleware)
        self._middleware_with = self._middleware_with + entries
        for entry in entries:
            logger.debug(f"Added middleware: {entry.type_name}")
        return self

    def without_middleware(self, middleware: MiddlewareSpec):
        """Append one entry or a list of entries to the exclude list."""
        entries = self._entries(middleware)
        self._middleware_without = self._middleware_without + entries
        for entry in entries:
            logger.debug(f"Excluded middleware: {entry.type_name}")
        return self

    def get_with(self) -> List[Any]:
        return [entry.value for entry in self._middleware_with]

    def get_without(self) -> List[Any]:
        return [entry.value for entry in self._middleware_without]

    def _stack_entries(self) -> List[MiddlewareEntry]:
        excluded = {entry.type_name.lower() for entry in self._middleware_without}
        return [
            entry for entry in self._middleware_with
            if entry.type_name.lower() not in excluded
        ]

    def get_stack(self) -> List[Any]:
        """Include list minus exclude list, in include order."""
        return [entry.value for entry in self._stack_entries()]

    def dispatch(
        self,
        request: ServerRequest,
        resolver: Any,
        default: Union[RequestHandler, Callable[[ServerRequest], Response]],
    ) -> Response:
        """
        Run ``request`` through the stack and then ``default``.

        Args:
            request: Incoming server request
            resolver: Object with ``resolve(identifier)``; only consulted
                for entries given as a class or dotted path
            default: Final handler, a RequestHandler or a plain callable

        Returns:
            The response produced by the chain
        """
        if isinstance(default, RequestHandler):
            handler: RequestHandler = default
        elif callable(default):
            handler = CallableRequestHandler(default)
        else:
            raise ValidationError(
                f"Default handler must be a RequestHandler or a callable, "
                f"{type(default).__name__} given"
            )

        stack = self._stack_entries()
        for entry in reversed(stack):
            handler = MiddlewareHandler(self._resolve(entry, resolver), handler)

        logger.debug(
            f"Dispatching {request.get_method()} {request.get_request_target()} "
            f"through {len(stack)} middleware"
        )
        return handler.handle(request)

    @staticmethod
    def _resolve(entry: MiddlewareEntry, resolver: Any) -> Any:
        if entry.instance is not None:
            return entry.instance
        if resolver is None:
            raise ResolutionError(
                f"No resolver available for middleware {entry.type_name!r}", entry.identifier
            )

        try:
            instance = resolver.resolve(entry.identifier)
        except ResolutionError:
            raise
        except (LookupError, ImportError, AttributeError, TypeError) as e:
            raise ResolutionError(
                f"Middleware {entry.type_name!r} could not be resolved: {e}", entry.identifier
            ) from e

        if not hasattr(instance, "process"):
            raise ResolutionError(
                f"Resolved {entry.type_name!r} to {type(instance).__name__}, "
                f"which is not middleware",
                entry.identifier,
            )
        return instance
