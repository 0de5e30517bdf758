"""
=============================================================================
HTTP MESSAGE BASE
=============================================================================

Shared state and behaviour of requests and responses: protocol version,
headers and body. Messages are IMMUTABLE: every with_*() / without_*()
method returns a new message and leaves the receiver untouched.

=============================================================================
HEADER STORAGE
=============================================================================

Header names are case-insensitive on the wire but we want to give back the
case the caller used. Two dicts are kept in lockstep:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  _headers       (original case → values, insertion ordered)         │
    │      "Content-Type"  → ["application/json"]                         │
    │      "X-Trace"       → ["a", "b"]                                   │
    │                                                                      │
    │  _header_names  (lower case → original case)                        │
    │      "content-type"  → "Content-Type"                               │
    │      "x-trace"       → "X-Trace"                                    │
    └─────────────────────────────────────────────────────────────────────┘

Lookups go lower-case → original-case → values, so both are O(1).

=============================================================================
HEADER GRAMMAR (RFC 7230 §3.2)
=============================================================================

    field-name  = token  = 1*tchar
    tchar       = "!" / "#" / "$" / "%" / "&" / "'" / "*" / "+" / "-" / "."
                / "^" / "_" / "`" / "|" / "~" / DIGIT / ALPHA
    field-value = *( HTAB / SP / VCHAR / obs-text )

Values are trimmed of surrounding spaces and tabs before validation, so
"  text/html \\t" is stored as "text/html". CR and LF never pass, which
rules out header injection.

=============================================================================
COPY-ON-WRITE
=============================================================================

    new = copy.copy(self)                   # shallow clone
    new._headers = {k: list(v) ...}         # private container copies
    new._header_names = dict(...)
    new.<field> = value                     # overwrite

The body Stream is shared between clones. Streams are mutable; a message
only guarantees that its *reference* to the stream does not change.

=============================================================================
"""

import copy
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..exceptions import ValidationError
from .stream import Stream


HEADER_NAME_PATTERN = re.compile(r"[a-zA-Z0-9'`#$%&*+.^_|~!-]+")

# obs-text is 0x80-0xFF on the wire; in decoded text every non-ASCII
# character is made of such bytes once encoded.
HEADER_VALUE_PATTERN = re.compile("[\x20\x09\x21-\x7e\x80-\U0010ffff]*")

HeaderValue = Union[str, int, float, None]
HeaderValues = Union[HeaderValue, Iterable[HeaderValue]]


def validate_header_name(name: Any) -> str:
    """Return ``name`` unchanged if it is a valid field-name, else raise."""
    if not isinstance(name, str) or not HEADER_NAME_PATTERN.fullmatch(name):
        raise ValidationError(f"Header name must be an RFC 7230 compatible string, got {name!r}")
    return name


def normalize_header_values(name: str, value: HeaderValues) -> List[str]:
    """
    Turn a single value or a list of values into a list of trimmed strings.

    Raises ValidationError for an empty list, a non-scalar value, or a
    value containing characters outside the field-value grammar.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            raise ValidationError(
                f"Header values for {name!r} must be a string or a non-empty list of strings"
            )
        values = list(value)
    else:
        values = [value]

    normalized = []
    for item in values:
        if isinstance(item, bool) or not isinstance(item, (str, int, float, type(None))):
            raise ValidationError(
                f"Header value for {name!r} must be a string or number, "
                f"{type(item).__name__} given"
            )
        text = "" if item is None else str(item)
        text = text.strip(" \t")
        if not HEADER_VALUE_PATTERN.fullmatch(text):
            raise ValidationError(
                f"Header value for {name!r} must be RFC 7230 compatible, got {text!r}"
            )
        normalized.append(text)
    return normalized


class Message:
    """
    Base HTTP message: protocol version, headers, body.

    Not used directly; Request and Response build on it.
    """

    def __init__(
        self,
        headers: Optional[Mapping[str, HeaderValues]] = None,
        body: Union[Stream, str, bytes, None] = None,
        protocol_version: str = "1.1",
    ):
        self._headers: Dict[str, List[str]] = {}
        self._header_names: Dict[str, str] = {}
        self._protocol = protocol_version
        self._stream: Optional[Stream] = None

        if headers:
            self._set_headers(headers)
        if body is not None and body != "" and body != b"":
            self._stream = body if isinstance(body, Stream) else Stream(body)

    def _set_headers(self, headers: Mapping[str, HeaderValues]) -> None:
        # Duplicate names differing only in case are merged, in order.
        for name, value in headers.items():
            validate_header_name(name)
            values = normalize_header_values(name, value)
            lower = name.lower()
            if lower in self._header_names:
                original = self._header_names[lower]
                self._headers[original] = self._headers[original] + values
            else:
                self._header_names[lower] = name
                self._headers[name] = values

    def _clone(self):
        new = copy.copy(self)
        new._headers = {name: list(values) for name, values in self._headers.items()}
        new._header_names = dict(self._header_names)
        return new

    # =========================================================================
    # PROTOCOL VERSION
    # =========================================================================

    def get_protocol_version(self) -> str:
        return self._protocol

    def with_protocol_version(self, version: str):
        if not isinstance(version, str):
            raise ValidationError("Protocol version must be a string")
        if version == self._protocol:
            return self
        new = self._clone()
        new._protocol = version
        return new

    # =========================================================================
    # HEADERS
    # =========================================================================

    def get_headers(self) -> Dict[str, List[str]]:
        """All headers, original case, in insertion order."""
        return {name: list(values) for name, values in self._headers.items()}

    def has_header(self, name: str) -> bool:
        return isinstance(name, str) and name.lower() in self._header_names

    def get_header(self, name: str) -> List[str]:
        """Values for a header (case-insensitive), or [] when absent."""
        if not isinstance(name, str):
            return []
        original = self._header_names.get(name.lower())
        if original is None:
            return []
        return list(self._headers[original])

    def get_header_line(self, name: str) -> str:
        """Comma-joined values, "" when the header is absent."""
        return ", ".join(self.get_header(name))

    def with_header(self, name: str, value: HeaderValues):
        """Return a message with ``name`` replaced by ``value``."""
        validate_header_name(name)
        values = normalize_header_values(name, value)
        lower = name.lower()

        new = self._clone()
        if lower in new._header_names:
            del new._headers[new._header_names[lower]]
        new._header_names[lower] = name
        new._headers[name] = values
        return new

    def with_added_header(self, name: str, value: HeaderValues):
        """Return a message with ``value`` appended to any existing values."""
        if not isinstance(name, str) or name == "":
            raise ValidationError("Header name must be an RFC 7230 compatible string")
        validate_header_name(name)
        values = normalize_header_values(name, value)

        new = self._clone()
        new._set_headers({name: values})
        return new

    def without_header(self, name: str):
        if not self.has_header(name):
            return self
        lower = name.lower()
        new = self._clone()
        original = new._header_names.pop(lower)
        del new._headers[original]
        return new

    # =========================================================================
    # BODY
    # =========================================================================

    def get_body(self) -> Stream:
        """The body stream; an empty one is created on first access."""
        if self._stream is None:
            self._stream = Stream()
        return self._stream

    def with_body(self, body: Stream):
        if not isinstance(body, Stream):
            raise ValidationError(f"Body must be a Stream, {type(body).__name__} given")
        if body is self._stream:
            return self
        new = self._clone()
        new._stream = body
        return new
