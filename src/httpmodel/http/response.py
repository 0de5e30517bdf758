"""
=============================================================================
HTTP RESPONSE
=============================================================================

An immutable HTTP response: status code, reason phrase, headers and body.

=============================================================================
STATUS LINE
=============================================================================

    HTTP/1.1 404 Not Found
    ────┬─── ─┬─ ────┬────
        │     │      │
    Version  Code  Reason phrase

The reason phrase is optional on construction. When the caller leaves it
empty the standard phrase for the code is used (see status_codes):

    Response(404).get_reason_phrase()              → "Not Found"
    Response(404, reason="Nope").get_reason_phrase() → "Nope"
    Response(299).get_reason_phrase()              → ""   (unknown code)

=============================================================================
"""

from datetime import datetime, timezone
from typing import Mapping, Optional, Union

from ..exceptions import ValidationError
from .message import HeaderValues, Message
from .status_codes import get_reason_phrase
from .stream import Stream


class Response(Message):
    """
    Immutable HTTP response.

    Usage:
        response = Response(201, {"Location": "/users/7"}, '{"id": 7}')
        response.get_status_code()      # 201
        response.get_reason_phrase()    # "Created"

        moved = response.with_status(301)
    """

    def __init__(
        self,
        status: Union[int, str] = 200,
        headers: Optional[Mapping[str, HeaderValues]] = None,
        body: Union[Stream, str, bytes, None] = None,
        protocol_version: str = "1.1",
        reason: str = "",
    ):
        super().__init__(headers, body, protocol_version)
        self._status_code = self._validate_status(status)
        self._reason_phrase = self._resolve_reason(self._status_code, reason)

    @staticmethod
    def _validate_status(code) -> int:
        if isinstance(code, bool):
            raise ValidationError("Status code has to be an integer")
        if isinstance(code, str):
            if not code.strip().isdecimal() or not code.strip().isascii():
                raise ValidationError(f"Status code has to be an integer, got {code!r}")
            code = int(code)
        if not isinstance(code, int):
            raise ValidationError(f"Status code has to be an integer, {type(code).__name__} given")
        code = int(code)
        if not 100 <= code <= 599:
            raise ValidationError(
                f"Status code has to be an integer between 100 and 599, got {code}"
            )
        return code

    @staticmethod
    def _resolve_reason(code: int, reason: Optional[str]) -> str:
        if reason is None or reason == "":
            return get_reason_phrase(code, "")
        return str(reason)

    def get_status_code(self) -> int:
        return self._status_code

    def get_reason_phrase(self) -> str:
        return self._reason_phrase

    def with_status(self, code: Union[int, str], reason_phrase: str = "") -> "Response":
        """
        Return a response with the given status.

        ``code`` may be an int or a numeric string. An empty reason phrase
        falls back to the standard phrase for the code.
        """
        code = self._validate_status(code)
        new = self._clone()
        new._status_code = code
        new._reason_phrase = self._resolve_reason(code, reason_phrase)
        return new

    def __repr__(self) -> str:
        return f"<Response {self._status_code} {self._reason_phrase}>"


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT. Aware datetimes are converted to UTC
    first; naive ones are assumed to be UTC already.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    # Weekday names (0=Monday in Python's datetime)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
