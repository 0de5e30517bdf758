"""
Unit tests for Cookie and CookieJar.
"""

from datetime import datetime, timedelta, timezone

import pytest

from httpmodel.exceptions import ValidationError
from httpmodel.http.cookie import Cookie, CookieJar, parse_cookie_header
from httpmodel.http.response import Response


class TestParseCookieHeader:
    """Tests for parsing the Cookie request header."""

    def test_pairs(self):
        """Test simple name=value pairs."""
        assert parse_cookie_header("sid=abc; theme=dark") == {"sid": "abc", "theme": "dark"}

    def test_decoding_and_quotes(self):
        """Test percent-decoding and quoted values."""
        assert parse_cookie_header('a=x%20y; b="quoted"') == {"a": "x y", "b": "quoted"}

    def test_first_occurrence_wins(self):
        """Test duplicate names keep the first value."""
        assert parse_cookie_header("a=1; a=2") == {"a": "1"}

    def test_malformed_pairs_skipped(self):
        """Test pairs without a name or '=' are ignored."""
        assert parse_cookie_header("novalue; =orphan; ok=1;") == {"ok": "1"}


class TestCookie:
    """Tests for building Set-Cookie values."""

    def test_defaults(self):
        """Test a fresh cookie's attributes."""
        cookie = Cookie("sid")

        assert cookie.get_name() == "sid"
        assert cookie.get_value() == ""
        assert cookie.get_path() == "/"
        assert cookie.is_http_only()
        assert not cookie.is_secure_only()
        assert cookie.get_same_site_policy() == "Lax"
        assert str(cookie) == "sid=; Path=/; HttpOnly; SameSite=Lax"

    def test_full_build(self):
        """Test every attribute in its place."""
        cookie = (Cookie("sid")
                  .with_value("4d79 b3")
                  .with_max_age(timedelta(hours=1))
                  .with_domain("example.com")
                  .with_path("/app")
                  .with_secure_only(True)
                  .with_same_site_policy("Strict"))

        assert cookie.build() == (
            "sid=4d79%20b3; Max-Age=3600; Domain=example.com; Path=/app; "
            "Secure; HttpOnly; SameSite=Strict"
        )

    def test_expires(self):
        """Test an absolute expiry is rendered as an HTTP date."""
        expires = datetime(2030, 12, 25, 16, 0, 0, tzinfo=timezone.utc)
        cookie = Cookie("sid").with_value("x").with_expiration(expires)

        assert cookie.get_expiration() == int(expires.timestamp())
        assert "Expires=Wed, 25 Dec 2030 16:00:00 GMT" in cookie.build()

    def test_max_age_wins_over_expires(self):
        """Test Expires is dropped when Max-Age is set."""
        cookie = Cookie("sid").with_expiration(2000000000).with_max_age(60)

        assert "Expires=" not in cookie.build()
        assert "Max-Age=60" in cookie.build()

    def test_relative_expiration(self):
        """Test a timedelta expiry counts from now."""
        cookie = Cookie("sid").with_expiration(timedelta(minutes=5))
        now = datetime.now(timezone.utc).timestamp()

        assert now + 290 <= cookie.get_expiration() <= now + 310

    def test_immutability(self):
        """Test withers return new cookies."""
        original = Cookie("sid")
        changed = original.with_value("x")

        assert original.get_value() == ""
        assert changed.get_value() == "x"

    def test_same_site_none_requires_secure(self):
        """Test SameSite=None without Secure cannot be built."""
        cookie = Cookie("sid").with_same_site_policy("None")

        with pytest.raises(ValidationError):
            cookie.build()
        assert cookie.with_secure_only(True).build().endswith("Secure; HttpOnly; SameSite=None")

    def test_no_same_site(self):
        """Test an empty policy omits the attribute."""
        assert "SameSite" not in Cookie("sid").with_same_site_policy("").build()

    def test_invalid_values(self):
        """Test invalid names, policies and times are rejected."""
        with pytest.raises(ValidationError):
            Cookie("bad name")
        with pytest.raises(ValidationError):
            Cookie("sid").with_same_site_policy("Sometimes")
        with pytest.raises(ValidationError):
            Cookie("sid").with_expiration("tomorrow")
        with pytest.raises(ValidationError):
            Cookie("sid").with_max_age(True)


class TestCookieJar:
    """Tests for CookieJar."""

    def test_from_request(self, server_request):
        """Test incoming cookies come from the request's cookie params."""
        jar = CookieJar.from_request(server_request.with_cookie_params({"sid": "abc"}))

        assert jar.has("sid")
        assert jar.get("sid") == "abc"
        assert jar.get("missing") == ""
        assert jar.get("missing", "x") == "x"

    def test_set_and_apply(self):
        """Test queued cookies become Set-Cookie headers."""
        jar = CookieJar()
        jar.set(Cookie("a").with_value("1")).set("b=2; Path=/")

        response = jar.apply(Response(200))

        assert response.get_header("Set-Cookie") == [
            "a=1; Path=/; HttpOnly; SameSite=Lax",
            "b=2; Path=/",
        ]
        assert jar.get_queued() == response.get_header("Set-Cookie")

    def test_apply_keeps_existing_set_cookie(self):
        """Test apply appends to headers already on the response."""
        response = CookieJar().set("b=2").apply(Response(200, {"Set-Cookie": "a=1"}))

        assert response.get_header("Set-Cookie") == ["a=1", "b=2"]

    def test_set_rejects_invalid(self):
        """Test malformed lines and types are rejected."""
        with pytest.raises(ValidationError):
            CookieJar().set("a=1\r\nX-Injected: 1")
        with pytest.raises(ValidationError):
            CookieJar().set(42)

    def test_delete(self):
        """Test delete queues an expired cookie and forgets the value."""
        jar = CookieJar({"sid": "abc"})

        jar.delete("sid")

        assert not jar.has("sid")
        assert jar.get_queued() == ["sid=; Expires=Thu, 01 Jan 1970 00:00:01 GMT; SameSite=Lax"]

    def test_delete_with_domain_and_path(self):
        """Test domain and path are carried on the deleting cookie."""
        jar = CookieJar().delete("sid", domain="example.com", path="/app")

        assert jar.get_queued() == [
            "sid=; Expires=Thu, 01 Jan 1970 00:00:01 GMT; Domain=example.com; Path=/app; SameSite=Lax"
        ]

    def test_cookie_add_and_remove(self):
        """Test the Cookie shortcuts queue on a jar."""
        jar = CookieJar()
        cookie = Cookie("pref").with_value("dark")

        cookie.add(jar)
        cookie.remove(jar)

        first, second = jar.get_queued()
        assert first.startswith("pref=dark;")
        assert second.startswith("pref=; Expires=Thu, 01 Jan 1970 00:00:01 GMT;")
