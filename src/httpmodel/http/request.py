"""
=============================================================================
HTTP REQUEST (CLIENT SIDE)
=============================================================================

An outgoing HTTP request: method, target URI, headers and body.

=============================================================================
REQUEST LINE
=============================================================================

    GET /api/users?page=2 HTTP/1.1
    ─┬─ ─────────┬─────── ────┬───
     │           │            │
   Method   Request target  Protocol

The request target is derived from the URI unless explicitly overridden:

    Uri                                  Request target
    ─────────────────────────────────    ──────────────
    http://example.com                   /
    http://example.com/a/b?x=1           /a/b?x=1
    with_request_target("*")             *            (OPTIONS)

=============================================================================
HOST HEADER
=============================================================================

HTTP/1.1 requires a Host header. It is derived from the URI and always
placed FIRST in the header list:

    Request("GET", "http://example.com:8080/")
        → Host: example.com:8080

Building a request keeps a caller-supplied Host header. with_uri()
replaces it unless preserve_host=True and one is already present.

=============================================================================
"""

import re
from typing import Mapping, Optional, Union

from ..exceptions import ValidationError
from .message import HeaderValues, Message
from .stream import Stream
from .uri import Uri


_WHITESPACE = re.compile(r"\s")


class Request(Message):
    """
    Immutable outgoing HTTP request.

    Usage:
        request = Request("post", "https://api.example.com/users",
                          {"Content-Type": "application/json"},
                          '{"name": "Ada"}')
        request.get_method()            # "POST"
        request.get_header_line("Host") # "api.example.com"
    """

    def __init__(
        self,
        method: str,
        uri: Union[Uri, str],
        headers: Optional[Mapping[str, HeaderValues]] = None,
        body: Union[Stream, str, bytes, None] = None,
        protocol_version: str = "1.1",
    ):
        super().__init__(headers, body, protocol_version)
        self._method = self._validate_method(method)
        self._uri = uri if isinstance(uri, Uri) else Uri(uri)
        self._request_target: Optional[str] = None

        if "host" not in self._header_names:
            self._update_host_from_uri()

    @staticmethod
    def _validate_method(method) -> str:
        if not isinstance(method, str):
            raise ValidationError(f"Method must be a string, {type(method).__name__} given")
        return method.upper()

    def _update_host_from_uri(self) -> None:
        host = self._uri.get_host()
        if host == "":
            return
        port = self._uri.get_port()
        if port is not None:
            host += f":{port}"

        header = self._header_names.get("host", "Host")
        self._header_names["host"] = header

        # Host goes first; the rest keep their order.
        headers = {header: [host]}
        for name, values in self._headers.items():
            if name != header:
                headers[name] = values
        self._headers = headers

    # =========================================================================
    # REQUEST TARGET
    # =========================================================================

    def get_request_target(self) -> str:
        if self._request_target is not None:
            return self._request_target

        target = self._uri.get_path() or "/"
        query = self._uri.get_query()
        if query != "":
            target += f"?{query}"
        return target

    def with_request_target(self, request_target: str) -> "Request":
        if not isinstance(request_target, str) or _WHITESPACE.search(request_target):
            raise ValidationError("Invalid request target provided; cannot contain whitespace")
        new = self._clone()
        new._request_target = request_target
        return new

    # =========================================================================
    # METHOD
    # =========================================================================

    def get_method(self) -> str:
        return self._method

    def with_method(self, method: str) -> "Request":
        method = self._validate_method(method)
        new = self._clone()
        new._method = method
        return new

    # =========================================================================
    # URI
    # =========================================================================

    def get_uri(self) -> Uri:
        return self._uri

    def with_uri(self, uri: Uri, preserve_host: bool = False) -> "Request":
        """
        Return a request targeting ``uri``.

        The Host header is recomputed from the new URI unless
        ``preserve_host`` is set and the request already has one.
        """
        if uri is self._uri:
            return self
        if not isinstance(uri, Uri):
            raise ValidationError(f"URI must be a Uri instance, {type(uri).__name__} given")

        new = self._clone()
        new._uri = uri
        if not preserve_host or "host" not in new._header_names:
            new._update_host_from_uri()
        return new

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._method} {self._uri}>"
