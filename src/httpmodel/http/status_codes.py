"""
=============================================================================
HTTP STATUS CODES AND REASON PHRASES
=============================================================================

Standard HTTP status codes and the reason phrases a Response falls back to
when the caller does not supply its own.

=============================================================================
STATUS CODE CATEGORIES
=============================================================================

    ┌────────────────────────────────────────────────────────────────────┐
    │                      STATUS CODE CATEGORIES                        │
    ├────────┬───────────────────────────────────────────────────────────┤
    │  1xx   │ INFORMATIONAL: Request received, continuing process      │
    │  2xx   │ SUCCESS: Request received, understood, accepted          │
    │  3xx   │ REDIRECTION: Further action needed                       │
    │  4xx   │ CLIENT ERROR: Problem with the request                   │
    │  5xx   │ SERVER ERROR: Problem with the server                    │
    └────────┴───────────────────────────────────────────────────────────┘

The reason phrase is informational only. A Response built with a code
that is not in the table and no explicit reason gets an empty phrase:

    HTTP/1.1 200 OK
             ─── ──
              │   │
              │   └── Reason phrase (REASON_PHRASES lookup)
              └────── Status code

=============================================================================
"""

from enum import IntEnum
from typing import Optional


class HTTPStatus(IntEnum):
    """
    HTTP status codes.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.CREATED.phrase
        'Created'
    """

    # =========================================================================
    # 1xx INFORMATIONAL
    # =========================================================================
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    EARLY_HINTS = 103

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    ALREADY_REPORTED = 208
    IM_USED = 226

    # =========================================================================
    # 3xx REDIRECTION
    # =========================================================================
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    SWITCH_PROXY = 306          # Reserved, no longer used
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    IM_A_TEAPOT = 418
    MISDIRECTED_REQUEST = 421
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    TOO_EARLY = 425
    UPGRADE_REQUIRED = 426
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431
    UNAVAILABLE_FOR_LEGAL_REASONS = 451

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    LOOP_DETECTED = 508
    NOT_EXTENDED = 510
    NETWORK_AUTHENTICATION_REQUIRED = 511

    @property
    def phrase(self) -> str:
        """Reason phrase for this status code."""
        return REASON_PHRASES.get(int(self), "")

    @property
    def is_informational(self) -> bool:
        return 100 <= self < 200

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


# =============================================================================
# REASON PHRASES
# =============================================================================
#
# Keyed by plain int so a Response can look up codes that have no enum
# member. Wording follows the classic httpd/PSR-7 tables (e.g. "Request
# Time-out", "Gateway Time-out").
#
# =============================================================================

REASON_PHRASES = {
    # 1xx Informational
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    103: "Early Hints",

    # 2xx Success
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-status",
    208: "Already Reported",
    226: "IM Used",

    # 3xx Redirection
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    306: "Switch Proxy",
    307: "Temporary Redirect",
    308: "Permanent Redirect",

    # 4xx Client Errors
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Time-out",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request-URI Too Large",
    415: "Unsupported Media Type",
    416: "Requested range not satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    421: "Misdirected Request",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    425: "Too Early",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    451: "Unavailable For Legal Reasons",

    # 5xx Server Errors
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Time-out",
    505: "HTTP Version not supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    510: "Not Extended",
    511: "Network Authentication Required",
}


def get_reason_phrase(code: int, default: Optional[str] = None) -> Optional[str]:
    """
    Look up the reason phrase for a status code.

    Args:
        code: Integer status code (HTTPStatus members work too)
        default: Returned when the code is not in the table

    Returns:
        The standard phrase, or ``default``
    """
    return REASON_PHRASES.get(int(code), default)
