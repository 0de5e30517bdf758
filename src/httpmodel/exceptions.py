"""
=============================================================================
EXCEPTION HIERARCHY
=============================================================================

All errors raised by httpmodel derive from HttpModelError, so callers can
catch the whole family with a single except clause.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        EXCEPTION TREE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HttpModelError                                                     │
    │   ├── ValidationError  (also ValueError)                            │
    │   │     bad header name/value, method, status, URI component,       │
    │   │     request target, parsed body, uploaded-file tree, cookie     │
    │   ├── StreamError      (also RuntimeError)                          │
    │   │     detached/non-capable stream, I/O failure, moved upload      │
    │   ├── ResolutionError  (also LookupError)                           │
    │   │     middleware identifier could not be resolved                 │
    │   └── ClientError                                                    │
    │         ├── ClientConfigurationError   (e.g. no CA bundle)          │
    │         └── TransportError             (network failure)            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Errors are raised synchronously at the call site. A failed with_*() call
never touches the receiver: the original message is still valid.

=============================================================================
"""


class HttpModelError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(HttpModelError, ValueError):
    """
    Raised when a value does not satisfy the HTTP grammar or type rules.

    Subclasses ValueError so code written against plain Python idioms
    (``except ValueError``) keeps working.
    """


class StreamError(HttpModelError, RuntimeError):
    """Raised when a stream operation cannot be performed."""


class ResolutionError(HttpModelError, LookupError):
    """
    Raised when a middleware identifier cannot be turned into an instance.

    Carries the identifier that failed so dispatch errors can be reported
    without re-parsing the message.
    """

    def __init__(self, message: str, identifier: object = None):
        super().__init__(message)
        self.identifier = identifier


class ClientError(HttpModelError):
    """Base class for HTTP client failures."""


class ClientConfigurationError(ClientError):
    """Raised when the client is configured in a way it cannot honour."""


class TransportError(ClientError):
    """
    Raised when the request never produced an HTTP response.

    A 4xx/5xx status is NOT a transport error: the client returns those as
    ordinary Response objects.
    """

    def __init__(self, message: str, request: object = None):
        super().__init__(message)
        self.request = request
