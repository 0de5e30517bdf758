"""
=============================================================================
MIDDLEWARE RESOLVER
=============================================================================

A middleware stack may name middleware by TYPE instead of holding an
instance. At dispatch time those identifiers are turned into instances by
a resolver: any object with a ``resolve(identifier)`` method.

Container is the bundled resolver:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  resolve(identifier)                                                 │
    │                                                                      │
    │   1. registered?  ── yes ──► factory()  (or the registered instance) │
    │         │ no                                                         │
    │   2. a class?     ── yes ──► identifier()                            │
    │         │ no                                                         │
    │   3. dotted path  ── import "pkg.module.Class" ──► Class()           │
    │         │ fails                                                      │
    │   4. ResolutionError                                                 │
    └─────────────────────────────────────────────────────────────────────┘

Identifiers are matched by TYPE NAME, case-insensitively: a class is known
by "module.QualName", so registering ``AuthMiddleware`` also answers
``"myapp.auth.authmiddleware"``.

=============================================================================
"""

import importlib
import logging
from typing import Any, Callable, Dict, Union

from ..exceptions import ResolutionError


logger = logging.getLogger(__name__)

Identifier = Union[type, str]


def qualified_name(cls: type) -> str:
    """``module.QualName`` for a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


def type_name_of(value: Any) -> str:
    """
    Type name used to compare middleware entries.

    A class gives its qualified name, a string is taken as the type name
    itself, anything else gives the qualified name of its class.
    """
    if isinstance(value, type):
        return qualified_name(value)
    if isinstance(value, str):
        return value
    return qualified_name(type(value))


def import_string(dotted_path: str) -> Any:
    """Import ``package.module.Attribute`` and return the attribute."""
    module_path, _, attribute = dotted_path.rpartition(".")
    if not module_path:
        raise ImportError(f"{dotted_path!r} is not a dotted path")
    module = importlib.import_module(module_path)
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise ImportError(f"Module {module_path!r} has no attribute {attribute!r}") from e


class Container:
    """
    Minimal resolver for middleware identifiers.

    Usage:
        container = Container()
        container.register(AuthMiddleware, lambda: AuthMiddleware(secret))
        container.resolve(AuthMiddleware)           # new AuthMiddleware
        container.resolve("myapp.cors.CorsMiddleware")
    """

    def __init__(self):
        self._factories: Dict[str, Callable[[], Any]] = {}

    @staticmethod
    def _key(identifier: Identifier) -> str:
        return type_name_of(identifier).lower()

    def register(self, identifier: Identifier, factory: Any) -> "Container":
        """
        Register how to build ``identifier``.

        ``factory`` is a zero-argument callable (a class works). Anything
        that is not callable is treated as a ready-made instance and
        returned as-is on every resolve.
        """
        if callable(factory):
            self._factories[self._key(identifier)] = factory
        else:
            self._factories[self._key(identifier)] = lambda: factory
        logger.debug(f"Registered resolver entry: {type_name_of(identifier)}")
        return self

    def has(self, identifier: Identifier) -> bool:
        return self._key(identifier) in self._factories

    def resolve(self, identifier: Identifier) -> Any:
        if not isinstance(identifier, (type, str)):
            raise ResolutionError(
                f"Cannot resolve {type(identifier).__name__}: expected a class or a dotted path",
                identifier,
            )

        factory = self._factories.get(self._key(identifier))
        if factory is None:
            if isinstance(identifier, type):
                factory = identifier
            else:
                try:
                    factory = import_string(identifier)
                except ImportError as e:
                    raise ResolutionError(
                        f"Middleware {identifier!r} could not be found: {e}", identifier
                    ) from e

        logger.debug(f"Resolving middleware {type_name_of(identifier)}")
        if not callable(factory):
            return factory
        try:
            return factory()
        except TypeError as e:
            raise ResolutionError(
                f"Middleware {type_name_of(identifier)!r} could not be instantiated: {e}",
                identifier,
            ) from e
