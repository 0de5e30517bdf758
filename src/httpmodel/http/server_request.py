"""
=============================================================================
SERVER-SIDE REQUEST
=============================================================================

An incoming request as seen by the application: everything a Request has,
plus the data the server environment derived from it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SERVER REQUEST CONTENTS                        │
    ├──────────────────┬──────────────────────────────────────────────────┤
    │ server params    │ environment snapshot (read-only, set once)       │
    │ cookie params    │ {"session": "abc"}         from Cookie header    │
    │ query params     │ {"page": "2"}              from the query string │
    │ parsed body      │ dict / list / object / None                      │
    │ uploaded files   │ {"avatar": UploadedFile, "docs": [...]}          │
    │ attributes       │ free-form, set by middleware (route args, ids)   │
    └──────────────────┴──────────────────────────────────────────────────┘

Nothing here parses anything: Factory fills the collections in and the
with_*() methods replace them wholesale.

=============================================================================
"""

from collections.abc import Mapping as MappingABC
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from ..exceptions import ValidationError
from .message import HeaderValues
from .request import Request
from .stream import Stream
from .uploaded_file import UploadedFile
from .uri import Uri


def validate_uploaded_files(files: Any) -> None:
    """Every leaf of the tree must be an UploadedFile."""
    if isinstance(files, UploadedFile):
        return
    if isinstance(files, MappingABC):
        for value in files.values():
            validate_uploaded_files(value)
        return
    if isinstance(files, (list, tuple)):
        for value in files:
            validate_uploaded_files(value)
        return
    raise ValidationError(
        f"Invalid leaf in uploaded files structure: {type(files).__name__}"
    )


class ServerRequest(Request):
    """
    Immutable server-side request.

    Usage:
        request = ServerRequest("GET", "/users?page=2",
                                server_params={"REMOTE_ADDR": "10.0.0.1"})
        request = request.with_query_params({"page": "2"})
        request = request.with_attribute("user_id", 42)
    """

    def __init__(
        self,
        method: str,
        uri: Union[Uri, str],
        headers: Optional[Mapping[str, HeaderValues]] = None,
        body: Union[Stream, str, bytes, None] = None,
        protocol_version: str = "1.1",
        server_params: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(method, uri, headers, body, protocol_version)
        self._server_params = MappingProxyType(dict(server_params or {}))
        self._cookie_params: Dict[str, Any] = {}
        self._query_params: Dict[str, Any] = {}
        self._parsed_body: Any = None
        self._uploaded_files: Dict[str, Any] = {}
        self._attributes: Dict[str, Any] = {}

    def get_server_params(self) -> Mapping[str, Any]:
        return self._server_params

    # =========================================================================
    # UPLOADED FILES
    # =========================================================================

    def get_uploaded_files(self) -> Dict[str, Any]:
        return dict(self._uploaded_files)

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> "ServerRequest":
        if not isinstance(uploaded_files, MappingABC):
            raise ValidationError("Uploaded files must be a mapping of field name to UploadedFile")
        validate_uploaded_files(uploaded_files)
        new = self._clone()
        new._uploaded_files = dict(uploaded_files)
        return new

    # =========================================================================
    # COOKIES & QUERY
    # =========================================================================

    def get_cookie_params(self) -> Dict[str, Any]:
        return dict(self._cookie_params)

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "ServerRequest":
        new = self._clone()
        new._cookie_params = dict(cookies)
        return new

    def get_query_params(self) -> Dict[str, Any]:
        return dict(self._query_params)

    def with_query_params(self, query: Mapping[str, Any]) -> "ServerRequest":
        new = self._clone()
        new._query_params = dict(query)
        return new

    # =========================================================================
    # PARSED BODY
    # =========================================================================

    def get_parsed_body(self) -> Any:
        return self._parsed_body

    def with_parsed_body(self, data: Any) -> "ServerRequest":
        """
        Return a request with the given deserialized body.

        Accepts a mapping, a list/tuple, an arbitrary object or None.
        Strings, bytes, numbers and booleans are rejected: those are raw
        content, not a parsed result.
        """
        if isinstance(data, (str, bytes, bytearray, int, float, complex)):
            raise ValidationError(
                "First parameter to with_parsed_body MUST be object, mapping, list or None"
            )
        new = self._clone()
        new._parsed_body = data
        return new

    # =========================================================================
    # ATTRIBUTES
    # =========================================================================

    def get_attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> "ServerRequest":
        new = self._clone()
        new._attributes = dict(self._attributes)
        new._attributes[name] = value
        return new

    def without_attribute(self, name: str) -> "ServerRequest":
        if name not in self._attributes:
            return self
        new = self._clone()
        new._attributes = dict(self._attributes)
        del new._attributes[name]
        return new
