"""
=============================================================================
COOKIES
=============================================================================

Cookie builds Set-Cookie header values; CookieJar holds the cookies a
request arrived with and queues the ones a response should set.

=============================================================================
SET-COOKIE ANATOMY
=============================================================================

    Set-Cookie: sid=4d79b3; Expires=Wed, 25 Dec 2030 16:00:00 GMT;
                ─────┬────  ──────────────────┬──────────────────
                     │                        │
                name=value          absolute expiry (dropped when
                (percent-encoded)   Max-Age is also set)

                Max-Age=3600; Domain=example.com; Path=/;
                Secure; HttpOnly; SameSite=Lax

A fresh Cookie defaults to Path=/, HttpOnly, SameSite=Lax. SameSite=None
is only accepted together with Secure; build() refuses otherwise.

=============================================================================
JAR FLOW
=============================================================================

    ServerRequest ──► CookieJar.from_request()   incoming values (has/get)
                          │
                      set(Cookie) / delete(name) queue Set-Cookie lines
                          │
    Response      ◄── jar.apply(response)        one header value per line

=============================================================================
"""

import copy
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union
from urllib.parse import quote, unquote

from ..exceptions import ValidationError
from .message import HEADER_NAME_PATTERN, normalize_header_values
from .response import Response, format_http_date


SAME_SITE_NONE = "None"
SAME_SITE_LAX = "Lax"
SAME_SITE_STRICT = "Strict"

SAME_SITE_POLICIES = (SAME_SITE_NONE, SAME_SITE_LAX, SAME_SITE_STRICT)


def parse_cookie_header(header: str) -> Dict[str, str]:
    """
    Parse a Cookie request header into a dict.

    Values are percent-decoded; the first occurrence of a name wins.

        >>> parse_cookie_header("sid=abc%20def; theme=dark")
        {'sid': 'abc def', 'theme': 'dark'}
    """
    cookies: Dict[str, str] = {}
    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        name = name.strip()
        if not sep or not name or name in cookies:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[name] = unquote(value)
    return cookies


class Cookie:
    """
    Immutable Set-Cookie builder.

    Usage:
        cookie = (Cookie("sid")
                  .with_value("4d79b3")
                  .with_max_age(timedelta(hours=1))
                  .with_secure_only(True))
        str(cookie)
        # "sid=4d79b3; Max-Age=3600; Path=/; Secure; HttpOnly; SameSite=Lax"
    """

    def __init__(self, name: str):
        if not isinstance(name, str) or not HEADER_NAME_PATTERN.fullmatch(name):
            raise ValidationError(f"Invalid cookie name {name!r}")
        self._name = name
        self._value = ""
        self._expiration = 0
        self._max_age = 0
        self._path = "/"
        self._domain = ""
        self._http_only = True
        self._secure_only = False
        self._same_site = SAME_SITE_LAX

    def _with(self, field: str, value) -> "Cookie":
        new = copy.copy(self)
        setattr(new, field, value)
        return new

    # =========================================================================
    # WITHERS
    # =========================================================================

    def with_value(self, value) -> "Cookie":
        return self._with("_value", "" if value is None else str(value))

    def with_expiration(self, expiration: Union[int, float, datetime, timedelta]) -> "Cookie":
        """
        Absolute expiry: epoch seconds, a datetime (naive means UTC), or a
        timedelta counted from now.
        """
        if isinstance(expiration, timedelta):
            expiration = time.time() + expiration.total_seconds()
        elif isinstance(expiration, datetime):
            if expiration.tzinfo is None:
                expiration = expiration.replace(tzinfo=timezone.utc)
            expiration = expiration.timestamp()
        elif isinstance(expiration, bool) or not isinstance(expiration, (int, float)):
            raise ValidationError(f"Invalid cookie expiration {expiration!r}")
        return self._with("_expiration", int(expiration))

    def with_max_age(self, max_age: Union[int, timedelta]) -> "Cookie":
        if isinstance(max_age, timedelta):
            max_age = max_age.total_seconds()
        elif isinstance(max_age, bool) or not isinstance(max_age, (int, float)):
            raise ValidationError(f"Invalid cookie max-age {max_age!r}")
        return self._with("_max_age", int(max_age))

    def with_path(self, path: str) -> "Cookie":
        return self._with("_path", path)

    def with_domain(self, domain: str) -> "Cookie":
        return self._with("_domain", domain)

    def with_same_site_policy(self, same_site: str) -> "Cookie":
        if same_site not in SAME_SITE_POLICIES and same_site != "":
            raise ValidationError(
                f"SameSite policy must be one of {', '.join(SAME_SITE_POLICIES)}, got {same_site!r}"
            )
        return self._with("_same_site", same_site)

    def with_http_only(self, http_only: bool) -> "Cookie":
        return self._with("_http_only", bool(http_only))

    def with_secure_only(self, secure_only: bool) -> "Cookie":
        return self._with("_secure_only", bool(secure_only))

    # =========================================================================
    # GETTERS
    # =========================================================================

    def get_name(self) -> str:
        return self._name

    def get_value(self) -> str:
        return self._value

    def get_expiration(self) -> int:
        return self._expiration

    def get_max_age(self) -> int:
        return self._max_age

    def get_path(self) -> str:
        return self._path

    def get_domain(self) -> str:
        return self._domain

    def get_same_site_policy(self) -> str:
        return self._same_site

    def is_http_only(self) -> bool:
        return self._http_only

    def is_secure_only(self) -> bool:
        return self._secure_only

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def build(self) -> str:
        """The Set-Cookie header value."""
        if self._same_site == SAME_SITE_NONE and not self._secure_only:
            raise ValidationError(
                "When the 'SameSite' attribute is set to 'None', "
                "the 'Secure' attribute should be set as well"
            )

        parts = [f"{self._name}={quote(self._value, safe='')}"]
        if self._expiration and not self._max_age:
            expires = datetime.fromtimestamp(self._expiration, tz=timezone.utc)
            parts.append(f"Expires={format_http_date(expires)}")
        if self._max_age:
            parts.append(f"Max-Age={self._max_age}")
        if self._domain:
            parts.append(f"Domain={self._domain}")
        if self._path:
            parts.append(f"Path={self._path}")
        if self._secure_only:
            parts.append("Secure")
        if self._http_only:
            parts.append("HttpOnly")
        if self._same_site:
            parts.append(f"SameSite={self._same_site}")
        return "; ".join(parts)

    def add(self, jar: "CookieJar") -> "CookieJar":
        """Queue this cookie on ``jar``."""
        return jar.set(self)

    def remove(self, jar: "CookieJar") -> "CookieJar":
        """Queue an already-expired copy of this cookie on ``jar``."""
        return jar.set(self.with_value("").with_expiration(1))

    def __str__(self) -> str:
        return self.build()

    def __repr__(self) -> str:
        return f"<Cookie {self._name}>"


class CookieJar:
    """
    Incoming cookie values plus outgoing Set-Cookie lines.

    Usage:
        jar = CookieJar.from_request(request)
        if not jar.has("sid"):
            jar.set(Cookie("sid").with_value(new_session_id()))
        return jar.apply(response)
    """

    def __init__(self, cookies: Optional[Dict[str, str]] = None):
        self._cookies: Dict[str, str] = dict(cookies or {})
        self._queued: List[str] = []

    @classmethod
    def from_request(cls, request) -> "CookieJar":
        return cls(request.get_cookie_params())

    def has(self, name: str) -> bool:
        return name in self._cookies

    def get(self, name: str, default: str = "") -> str:
        return self._cookies.get(name, default)

    def set(self, cookie: Union[Cookie, str]) -> "CookieJar":
        """Queue a Cookie or a raw Set-Cookie value."""
        line = cookie.build() if isinstance(cookie, Cookie) else cookie
        if not isinstance(line, str):
            raise ValidationError(f"Cookie must be a Cookie or a string, {type(cookie).__name__} given")
        self._queued.extend(normalize_header_values("Set-Cookie", line))
        return self

    def delete(self, name: str, domain: str = "", path: str = "") -> "CookieJar":
        """Queue an expiring cookie for ``name`` and forget its incoming value."""
        cookie = (Cookie(name)
                  .with_value("")
                  .with_expiration(1)
                  .with_domain(domain)
                  .with_path(path)
                  .with_http_only(False))
        self.set(cookie)
        self._cookies.pop(name, None)
        return self

    def get_queued(self) -> List[str]:
        return list(self._queued)

    def apply(self, response: Response) -> Response:
        """Return ``response`` with one Set-Cookie value per queued cookie."""
        for line in self._queued:
            response = response.with_added_header("Set-Cookie", line)
        return response
