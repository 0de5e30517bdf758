"""
Unit tests for outgoing HTTP requests.
"""

import pytest

from httpmodel.exceptions import ValidationError
from httpmodel.http.request import Request
from httpmodel.http.uri import Uri


class TestRequestConstruction:
    """Tests for building requests."""

    def test_method_uppercased(self):
        """Test the method is normalized to upper case."""
        assert Request("post", "http://example.com").get_method() == "POST"

    def test_uri_from_string(self):
        """Test a string URI is parsed."""
        request = Request("GET", "https://example.com/users?page=2")

        assert isinstance(request.get_uri(), Uri)
        assert request.get_uri().get_path() == "/users"

    def test_host_header_from_uri(self):
        """Test the Host header is derived and placed first."""
        request = Request("GET", "http://example.com:8080/", {"Accept": "text/html"})

        assert list(request.get_headers())[0] == "Host"
        assert request.get_header_line("host") == "example.com:8080"

    def test_default_port_not_in_host(self):
        """Test a default port does not appear in Host."""
        assert Request("GET", "https://example.com:443/").get_header_line("Host") == "example.com"

    def test_explicit_host_kept(self):
        """Test a caller-supplied Host header wins on construction."""
        request = Request("GET", "http://example.com/", {"host": "proxy.local"})

        assert request.get_headers() == {"host": ["proxy.local"]}

    def test_no_host_for_relative_uri(self):
        """Test a hostless URI adds no Host header."""
        assert not Request("GET", "/relative").has_header("Host")

    def test_body(self):
        """Test the body is available as a stream."""
        request = Request("PUT", "http://example.com/", {}, '{"a": 1}')

        assert str(request.get_body()) == '{"a": 1}'

    def test_invalid_method_type(self):
        """Test a non-string method is rejected."""
        with pytest.raises(ValidationError):
            Request(None, "http://example.com")

    def test_repr(self):
        """Test the debug representation."""
        assert repr(Request("get", "http://example.com/x")) == "<Request GET http://example.com/x>"


class TestRequestTarget:
    """Tests for the request target."""

    def test_derived_from_uri(self):
        """Test path and query form the target."""
        assert Request("GET", "http://example.com/a/b?x=1").get_request_target() == "/a/b?x=1"

    def test_defaults_to_slash(self):
        """Test an empty path gives "/"."""
        assert Request("GET", "http://example.com").get_request_target() == "/"

    def test_override(self):
        """Test an explicit target wins over the URI."""
        request = Request("OPTIONS", "http://example.com/x").with_request_target("*")

        assert request.get_request_target() == "*"

    def test_whitespace_rejected(self):
        """Test targets with whitespace are rejected."""
        with pytest.raises(ValidationError):
            Request("GET", "http://example.com").with_request_target("/a b")


class TestRequestWithers:
    """Tests for with_method and with_uri."""

    def test_with_method(self):
        """Test changing the method."""
        original = Request("GET", "http://example.com")
        request = original.with_method("delete")

        assert request.get_method() == "DELETE"
        assert original.get_method() == "GET"

    def test_with_uri_updates_host(self):
        """Test the Host header follows the new URI."""
        request = Request("GET", "http://example.com/").with_uri(Uri("http://other.com:81/"))

        assert request.get_header_line("Host") == "other.com:81"
        assert request.get_uri().get_host() == "other.com"

    def test_with_uri_preserve_host(self):
        """Test preserve_host keeps an existing Host header."""
        request = Request("GET", "http://example.com/").with_uri(
            Uri("http://other.com/"), preserve_host=True
        )

        assert request.get_header_line("Host") == "example.com"

    def test_preserve_host_sets_missing_host(self):
        """Test preserve_host still sets Host when there is none."""
        request = Request("GET", "/relative").with_uri(
            Uri("http://other.com/"), preserve_host=True
        )

        assert request.get_header_line("Host") == "other.com"

    def test_with_uri_keeps_host_name_case(self):
        """Test the existing Host header name case is reused."""
        request = Request("GET", "http://a.com", {"host": "x"}).with_uri(Uri("http://b.com"))

        assert request.get_headers() == {"host": ["b.com"]}

    def test_with_same_uri_returns_receiver(self):
        """Test passing the current Uri is a no-op."""
        request = Request("GET", "http://example.com")

        assert request.with_uri(request.get_uri()) is request

    def test_with_uri_requires_uri(self):
        """Test a plain string is rejected."""
        with pytest.raises(ValidationError):
            Request("GET", "http://example.com").with_uri("http://other.com")
