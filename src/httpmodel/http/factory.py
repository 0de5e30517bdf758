"""
=============================================================================
MESSAGE FACTORY
=============================================================================

One place to build every message type, plus the bridge from a WSGI
environ (PEP 3333) to a fully populated ServerRequest.

=============================================================================
WSGI ENVIRON → SERVER REQUEST
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  environ key                         ServerRequest part              │
    ├──────────────────────────────────────┬──────────────────────────────┤
    │  REQUEST_METHOD                      │  method                      │
    │  HTTP_*, CONTENT_TYPE, CONTENT_LENGTH│  headers                     │
    │  wsgi.url_scheme / HTTPS             │  uri scheme                  │
    │  HTTP_HOST  (or SERVER_NAME/ADDR)    │  uri host[:port]             │
    │  SERVER_PORT                         │  uri port (when Host has none)│
    │  REQUEST_URI or SCRIPT_NAME+PATH_INFO│  uri path                    │
    │  QUERY_STRING                        │  uri query + query params    │
    │  SERVER_PROTOCOL                     │  protocol version            │
    │  wsgi.input                          │  body (+ parsed body)        │
    │  HTTP_COOKIE                         │  cookie params               │
    │  string-valued keys                  │  server params               │
    └──────────────────────────────────────┴──────────────────────────────┘

Parsed body: POSTed application/x-www-form-urlencoded becomes a dict,
application/json becomes whatever the JSON document holds (dict or list).
Multipart bodies are NOT parsed here; the server hands uploaded files in
through the ``files`` argument, in the classic upload-spec shape:

    {"avatar": {"tmp_name": "/tmp/abc", "size": 1024, "error": 0,
                "name": "me.png", "type": "image/png"}}

=============================================================================
"""

import json
import logging
import os
from collections.abc import Mapping as MappingABC
from typing import Any, BinaryIO, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl, quote

from ..exceptions import StreamError, ValidationError
from .cookie import parse_cookie_header
from .mime_types import FORM_URLENCODED, media_type
from .request import Request
from .response import Response
from .server_request import ServerRequest
from .stream import Stream
from .uploaded_file import UploadedFile, UploadErrorCode
from .uri import Uri


logger = logging.getLogger(__name__)

UPLOAD_SPEC_FIELDS = ("tmp_name", "size", "error", "name", "type")

_PATH_SAFE = "/;=,:@!$&'()*+~"


def parse_params(query: str) -> Dict[str, Any]:
    """
    Parse a query string or urlencoded body.

    A repeated key keeps its last value; keys ending in "[]" collect
    every value into a list.

        >>> parse_params("a=1&a=2&tag[]=x&tag[]=y")
        {'a': '2', 'tag': ['x', 'y']}
    """
    params: Dict[str, Any] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key.endswith("[]"):
            params.setdefault(key[:-2], []).append(value)
        else:
            params[key] = value
    return params


class Factory:
    """
    Builds requests, responses, streams, uploads and URIs.

    Usage:
        factory = Factory()
        request = factory.create_request("GET", "https://example.com/")
        response = factory.create_response(404)

        # inside a WSGI app
        def app(environ, start_response):
            request = factory.create_server_request_from_environ(environ)
    """

    # =========================================================================
    # MESSAGES
    # =========================================================================

    def create_request(self, method: str, uri: Union[Uri, str]) -> Request:
        return Request(method, uri)

    def create_response(self, code: int = 200, reason_phrase: str = "") -> Response:
        return Response(code, reason=reason_phrase)

    def create_server_request(
        self,
        method: str,
        uri: Union[Uri, str],
        server_params: Optional[Mapping[str, Any]] = None,
    ) -> ServerRequest:
        return ServerRequest(method, uri, server_params=server_params)

    # =========================================================================
    # STREAMS
    # =========================================================================

    def create_stream(self, content: Union[str, bytes] = "") -> Stream:
        return Stream(content)

    def create_stream_from_file(self, filename: str, mode: str = "r") -> Stream:
        """
        Open ``filename`` and wrap it in a Stream.

        ``mode`` follows fopen(): r, w, a, x or c, optionally with "+".
        Files are always opened in binary. "c" opens for writing without
        truncating, creating the file when missing.
        """
        if not isinstance(filename, str) or filename == "":
            raise ValidationError("Path cannot be empty")
        if not isinstance(mode, str) or mode == "" or mode[0] not in "rwaxc":
            raise ValidationError(f"The mode {mode!r} is invalid")

        update = "+" in mode
        try:
            if mode[0] == "c":
                flags = (os.O_RDWR if update else os.O_WRONLY) | os.O_CREAT
                fd = os.open(filename, flags, 0o666)
                resource = os.fdopen(fd, "rb+" if update else "wb")
            else:
                resource = open(filename, mode[0] + "b" + ("+" if update else ""))
        except OSError as e:
            raise StreamError(f"The file {filename!r} cannot be opened: {e}") from e
        return Stream(resource)

    def create_stream_from_resource(self, resource: BinaryIO) -> Stream:
        return Stream(resource)

    # =========================================================================
    # UPLOADS & URIS
    # =========================================================================

    def create_uploaded_file(
        self,
        stream: Stream,
        size: Optional[int] = None,
        error: int = UploadErrorCode.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ) -> UploadedFile:
        if size is None:
            size = stream.get_size()
        return UploadedFile(stream, size, error, client_filename, client_media_type)

    def create_uri(self, uri: str = "") -> Uri:
        return Uri(uri)

    def normalize_files(self, files: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Turn upload specs into a tree of UploadedFile objects.

        Accepts UploadedFile leaves, upload-spec dicts (also the
        "one key per field, one list per key" shape produced by
        ``name="docs[]"`` inputs), nested dicts and lists.
        """
        normalized: Dict[str, Any] = {}
        for key, value in files.items():
            normalized[key] = self._normalize_file_value(value)
        return normalized

    def _normalize_file_value(self, value: Any) -> Any:
        if isinstance(value, UploadedFile):
            return value
        if isinstance(value, MappingABC) and "tmp_name" in value:
            return self._create_uploaded_file_from_spec(value)
        if isinstance(value, MappingABC):
            return self.normalize_files(value)
        if isinstance(value, (list, tuple)):
            return [self._normalize_file_value(item) for item in value]
        raise ValidationError("Invalid value in files specification")

    def _create_uploaded_file_from_spec(self, spec: Mapping[str, Any]) -> Any:
        tmp_name = spec["tmp_name"]
        if isinstance(tmp_name, (list, tuple, MappingABC)):
            return self._normalize_nested_file_spec(spec)
        try:
            size = int(spec.get("size") or 0)
            error = int(spec.get("error") or 0)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid size or error in upload spec: {e}") from e
        return UploadedFile(tmp_name, size, error, spec.get("name"), spec.get("type"))

    def _normalize_nested_file_spec(self, spec: Mapping[str, Any]) -> Any:
        tmp_names = spec["tmp_name"]
        keys = range(len(tmp_names)) if isinstance(tmp_names, (list, tuple)) else list(tmp_names)

        normalized = {}
        for key in keys:
            sub_spec = {
                field: spec[field][key]
                for field in UPLOAD_SPEC_FIELDS
                if field in spec
            }
            normalized[key] = self._create_uploaded_file_from_spec(sub_spec)

        if isinstance(tmp_names, (list, tuple)):
            return [normalized[key] for key in keys]
        return normalized

    # =========================================================================
    # WSGI
    # =========================================================================

    def create_server_request_from_environ(
        self,
        environ: Mapping[str, Any],
        files: Optional[Mapping[str, Any]] = None,
    ) -> ServerRequest:
        """Build a ServerRequest from a WSGI environ."""
        method = environ.get("REQUEST_METHOD", "GET")
        headers = self._headers_from_environ(environ)
        uri = self._uri_from_environ(environ)
        protocol = environ.get("SERVER_PROTOCOL", "HTTP/1.1").replace("HTTP/", "")
        body = self._body_from_environ(environ)
        server_params = {
            key: value for key, value in environ.items() if isinstance(value, str)
        }

        request = ServerRequest(method, uri, headers, body, protocol, server_params)
        request = request.with_cookie_params(parse_cookie_header(environ.get("HTTP_COOKIE", "")))
        request = request.with_query_params(parse_params(environ.get("QUERY_STRING", "")))

        parsed_body = self._parse_body(request)
        if parsed_body is not None:
            request = request.with_parsed_body(parsed_body)
        if files:
            request = request.with_uploaded_files(self.normalize_files(files))

        logger.debug(f"Built server request {request.get_method()} {request.get_uri()}")
        return request

    @staticmethod
    def _headers_from_environ(environ: Mapping[str, Any]) -> Dict[str, str]:
        headers = {}
        for key, value in environ.items():
            if key in ("HTTP_CONTENT_TYPE", "HTTP_CONTENT_LENGTH"):
                continue
            if key.startswith("HTTP_"):
                name = key[5:].replace("_", "-").title()
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                name = key.replace("_", "-").title()
            else:
                continue
            headers[name] = value
        return headers

    @staticmethod
    def _uri_from_environ(environ: Mapping[str, Any]) -> Uri:
        scheme = environ.get("wsgi.url_scheme")
        if not scheme:
            https = environ.get("HTTPS", "")
            scheme = "https" if https and https != "off" else "http"
        uri = Uri().with_scheme(scheme)

        has_port = False
        if environ.get("HTTP_HOST"):
            # Scheme-less, so no default port is suppressed while parsing.
            try:
                authority = Uri(f"//{environ['HTTP_HOST']}")
            except ValidationError:
                authority = None
            if authority is not None:
                uri = uri.with_host(authority.get_host())
                port = authority.get_port()
                if port is not None:
                    has_port = True
                    uri = uri.with_port(port)
        elif environ.get("SERVER_NAME"):
            uri = uri.with_host(environ["SERVER_NAME"])
        elif environ.get("SERVER_ADDR"):
            uri = uri.with_host(environ["SERVER_ADDR"])

        if not has_port and environ.get("SERVER_PORT"):
            uri = uri.with_port(environ["SERVER_PORT"])

        request_uri = environ.get("REQUEST_URI") or environ.get("RAW_URI")
        if request_uri:
            path, sep, query = request_uri.partition("?")
            uri = uri.with_path(path)
            if sep:
                return uri.with_query(query)
        else:
            raw_path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
            # PEP 3333: path strings carry latin-1 decoded bytes.
            uri = uri.with_path(quote(raw_path.encode("latin-1", "replace"), safe=_PATH_SAFE))

        return uri.with_query(environ.get("QUERY_STRING", ""))

    @staticmethod
    def _body_from_environ(environ: Mapping[str, Any]) -> Stream:
        stream = environ.get("wsgi.input")
        if stream is None:
            return Stream()
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        if length <= 0:
            return Stream()
        return Stream(stream.read(length))

    @staticmethod
    def _parse_body(request: ServerRequest) -> Any:
        if request.get_method() != "POST":
            return None
        content_type = media_type(request.get_header_line("Content-Type"))
        if content_type not in (FORM_URLENCODED, "application/json"):
            return None

        body = request.get_body()
        raw = bytes(body)
        body.rewind()
        if content_type == FORM_URLENCODED:
            return parse_params(raw.decode("utf-8", errors="replace"))

        try:
            data = json.loads(raw) if raw else None
        except ValueError as e:
            logger.warning(f"Ignoring malformed JSON request body: {e}")
            return None
        return data if isinstance(data, (dict, list)) else None
