"""
HTTP message model.

Value objects (Uri, Stream, Request, Response, ServerRequest,
UploadedFile), cookie helpers, the message Factory and the Client.
"""

from .status_codes import HTTPStatus, REASON_PHRASES, get_reason_phrase
from .uri import Uri, DEFAULT_PORTS
from .stream import Stream
from .message import Message
from .request import Request
from .response import Response, format_http_date
from .uploaded_file import UploadedFile, UploadErrorCode
from .server_request import ServerRequest
from .cookie import (
    Cookie,
    CookieJar,
    SAME_SITE_LAX,
    SAME_SITE_NONE,
    SAME_SITE_STRICT,
    parse_cookie_header,
)
from .factory import Factory
from .client import Client

__all__ = [
    "HTTPStatus",
    "REASON_PHRASES",
    "get_reason_phrase",
    "Uri",
    "DEFAULT_PORTS",
    "Stream",
    "Message",
    "Request",
    "Response",
    "format_http_date",
    "UploadedFile",
    "UploadErrorCode",
    "ServerRequest",
    "Cookie",
    "CookieJar",
    "SAME_SITE_LAX",
    "SAME_SITE_NONE",
    "SAME_SITE_STRICT",
    "parse_cookie_header",
    "Factory",
    "Client",
]
