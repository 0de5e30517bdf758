"""
Unit tests for the middleware stack, resolver and logging middleware.
"""

import json
import logging

import pytest

from httpmodel.exceptions import ResolutionError, ValidationError
from httpmodel.http.response import Response
from httpmodel.http.server_request import ServerRequest
from httpmodel.middleware.base import CallableMiddleware, Middleware
from httpmodel.middleware.logging import LoggingMiddleware, RequestLog
from httpmodel.middleware.resolver import Container, import_string, qualified_name, type_name_of
from httpmodel.middleware.stack import HasMiddleware, MiddlewareEntry


class Route(HasMiddleware):
    pass


class Recorder(Middleware):
    """Appends its label to the X-Order response header."""

    label = "recorder"

    def __init__(self, label=None):
        if label is not None:
            self.label = label

    def process(self, request, handler):
        return handler.handle(request).with_added_header("X-Order", self.label)


class Session(Recorder):
    label = "session"


class Auth(Recorder):
    label = "auth"


class Csrf(Recorder):
    label = "csrf"


class NeedsArgs(Recorder):
    def __init__(self, secret):
        super().__init__(secret)


def order(response):
    return response.get_header("X-Order")


class TestHasMiddlewareLists:
    """Tests for the include and exclude lists."""

    def test_empty_by_default(self):
        """Test a fresh owner has no middleware."""
        route = Route()

        assert route.get_with() == []
        assert route.get_without() == []
        assert route.get_stack() == []

    def test_with_single_and_list(self):
        """Test adding one entry and a list of entries."""
        route = Route().with_middleware(Session).with_middleware([Auth, "myapp.Cors"])

        assert route.get_with() == [Session, Auth, "myapp.Cors"]

    def test_returns_same_instance(self):
        """Test the mixin methods mutate and return self."""
        route = Route()

        assert route.with_middleware(Session) is route
        assert route.without_middleware(Auth) is route

    def test_instances_do_not_share_lists(self):
        """Test class-level defaults are not mutated."""
        first = Route().with_middleware(Session)
        second = Route()

        assert second.get_with() == []
        assert first.get_with() == [Session]

    def test_stack_excludes_by_type(self):
        """Test excluding a class removes it from the stack."""
        route = Route().with_middleware([Session, Auth, Csrf]).without_middleware(Csrf)

        assert route.get_stack() == [Session, Auth]
        assert route.get_without() == [Csrf]

    def test_exclude_class_removes_instances(self):
        """Test an instance is excluded by its class."""
        auth = Auth()
        route = Route().with_middleware([Session(), auth]).without_middleware(Auth)

        assert auth not in route.get_stack()
        assert len(route.get_stack()) == 1

    def test_exclude_by_dotted_name_case_insensitive(self):
        """Test a string identifier matches regardless of case."""
        route = Route().with_middleware([Session, Auth])
        route.without_middleware(qualified_name(Auth).upper())

        assert route.get_stack() == [Session]

    def test_exclude_callable_middleware(self):
        """Test excluding CallableMiddleware removes function middleware."""
        route = Route().with_middleware([lambda r, h: h.handle(r), Session])
        route.without_middleware(CallableMiddleware)

        assert route.get_stack() == [Session]

    def test_functions_are_wrapped(self):
        """Test a plain function becomes CallableMiddleware."""
        route = Route().with_middleware(lambda r, h: h.handle(r))

        assert isinstance(route.get_with()[0], CallableMiddleware)

    def test_invalid_entries(self):
        """Test empty identifiers and non-middleware values are rejected."""
        with pytest.raises(ValidationError):
            Route().with_middleware("")
        with pytest.raises(ValidationError):
            Route().with_middleware(42)


class TestMiddlewareEntry:
    """Tests for entry construction and matching."""

    def test_identifier_entry(self):
        """Test a class becomes an identifier entry."""
        entry = MiddlewareEntry.of(Auth)

        assert entry.identifier is Auth
        assert entry.instance is None
        assert entry.value is Auth
        assert entry.type_name == qualified_name(Auth)

    def test_instance_entry(self):
        """Test an instance becomes an instance entry."""
        auth = Auth()
        entry = MiddlewareEntry.of(auth)

        assert entry.instance is auth
        assert entry.type_name == qualified_name(Auth)
        assert entry.matches(MiddlewareEntry.of(Auth))

    def test_of_is_idempotent(self):
        """Test wrapping an entry again returns it."""
        entry = MiddlewareEntry.of(Auth)

        assert MiddlewareEntry.of(entry) is entry


class TestDispatch:
    """Tests for running requests through the stack."""

    def test_order(self, server_request, ok_handler):
        """Test middleware runs in include order around the handler."""
        route = Route().with_middleware([Session(), Auth(), Csrf()])

        response = route.dispatch(server_request, None, ok_handler)

        # Post-processing appends innermost first.
        assert order(response) == ["csrf", "auth", "session"]
        assert str(response.get_body()) == "handled"

    def test_short_circuit(self, server_request):
        """Test a middleware that answers itself stops the chain."""
        calls = []

        def forward(request, handler):
            calls.append("A")
            return handler.handle(request)

        def deny(request, handler):
            calls.append("B")
            return Response(403)

        def default(request):
            calls.append("D")
            return Response(200)

        route = Route().with_middleware([CallableMiddleware(forward), CallableMiddleware(deny)])

        response = route.dispatch(server_request, None, default)

        assert calls == ["A", "B"]
        assert response.get_status_code() == 403

    def test_excluded_not_run(self, server_request, ok_handler):
        """Test excluded middleware is skipped."""
        route = Route().with_middleware([Session(), Auth(), Csrf()]).without_middleware(Auth)

        assert order(route.dispatch(server_request, None, ok_handler)) == ["csrf", "session"]

    def test_empty_stack_calls_default(self, server_request, ok_handler):
        """Test an empty stack goes straight to the default handler."""
        response = Route().dispatch(server_request, None, ok_handler)

        assert response.get_status_code() == 200
        assert not response.has_header("X-Order")

    def test_identifiers_resolved(self, server_request, ok_handler):
        """Test class identifiers are built by the resolver."""
        container = Container().register(NeedsArgs, lambda: NeedsArgs("configured"))
        route = Route().with_middleware([Session, NeedsArgs])

        response = route.dispatch(server_request, container, ok_handler)

        assert order(response) == ["configured", "session"]

    def test_identifier_without_resolver(self, server_request, ok_handler):
        """Test type identifiers need a resolver."""
        route = Route().with_middleware(Session)

        with pytest.raises(ResolutionError) as exc_info:
            route.dispatch(server_request, None, ok_handler)

        assert exc_info.value.identifier is Session

    def test_unresolvable_identifier(self, server_request, ok_handler):
        """Test a missing dotted path raises ResolutionError."""
        route = Route().with_middleware("no.such.module.Middleware")

        with pytest.raises(ResolutionError):
            route.dispatch(server_request, Container(), ok_handler)

    def test_resolved_non_middleware(self, server_request, ok_handler):
        """Test a resolved object must have process()."""
        container = Container().register("fake.Thing", object())
        route = Route().with_middleware("fake.Thing")

        with pytest.raises(ResolutionError):
            route.dispatch(server_request, container, ok_handler)

    def test_custom_resolver_errors_wrapped(self, server_request, ok_handler):
        """Test lookup errors from any resolver become ResolutionError."""

        class DictResolver:
            def resolve(self, identifier):
                return {}[identifier]

        route = Route().with_middleware(Auth)

        with pytest.raises(ResolutionError):
            route.dispatch(server_request, DictResolver(), ok_handler)

    def test_invalid_default(self, server_request):
        """Test the default handler must be callable."""
        with pytest.raises(ValidationError):
            Route().dispatch(server_request, None, "not a handler")

    def test_request_changes_reach_handler(self, server_request):
        """Test attributes added by middleware are visible downstream."""

        def tag(request, handler):
            return handler.handle(request.with_attribute("tagged", True))

        route = Route().with_middleware(tag)
        response = route.dispatch(
            server_request, None,
            lambda request: Response(200 if request.get_attribute("tagged") else 500),
        )

        assert response.get_status_code() == 200


class TestContainer:
    """Tests for the default resolver."""

    def test_instantiates_class(self):
        """Test an unregistered class is instantiated."""
        assert isinstance(Container().resolve(Auth), Auth)

    def test_factory(self):
        """Test a registered factory is called on each resolve."""
        container = Container().register(Auth, lambda: Auth("custom"))

        first = container.resolve(Auth)
        second = container.resolve(Auth)

        assert first.label == "custom"
        assert first is not second

    def test_instance_registration(self):
        """Test a non-callable registration is returned as-is."""
        auth = Auth()
        auth.label = "shared"
        container = Container().register("myapp.Auth", auth)

        assert container.resolve("MYAPP.AUTH") is auth

    def test_has(self):
        """Test registrations are found case-insensitively."""
        container = Container().register(Auth, Auth)

        assert container.has(Auth)
        assert container.has(qualified_name(Auth).lower())
        assert not container.has(Session)

    def test_dotted_path(self):
        """Test a dotted path is imported and instantiated."""
        resolved = Container().resolve("httpmodel.middleware.logging.LoggingMiddleware")

        assert isinstance(resolved, LoggingMiddleware)

    def test_bad_dotted_path(self):
        """Test unknown modules and attributes raise ResolutionError."""
        with pytest.raises(ResolutionError):
            Container().resolve("httpmodel.middleware.logging.Missing")
        with pytest.raises(ResolutionError):
            Container().resolve("nodots")

    def test_constructor_needs_arguments(self):
        """Test a class that cannot be built without arguments."""
        with pytest.raises(ResolutionError):
            Container().resolve(NeedsArgs)

    def test_invalid_identifier(self):
        """Test identifiers must be classes or strings."""
        with pytest.raises(ResolutionError):
            Container().resolve(42)

    def test_helpers(self):
        """Test the type-name helpers."""
        assert type_name_of(Auth) == qualified_name(Auth)
        assert type_name_of(Auth()) == qualified_name(Auth)
        assert type_name_of("a.B") == "a.B"
        assert import_string("json.dumps") is json.dumps
        with pytest.raises(ImportError):
            import_string("json")


class TestLoggingMiddleware:
    """Tests for the access-log middleware."""

    def test_text_log(self, server_request, ok_handler, caplog):
        """Test a text access line is logged."""
        caplog.set_level(logging.INFO, logger="httpmodel.access")
        route = Route().with_middleware(LoggingMiddleware())

        response = route.dispatch(server_request, None, ok_handler)

        assert response.has_header("X-Request-ID")
        assert len(response.get_header_line("X-Request-ID")) == 8
        line = caplog.records[-1].getMessage()
        assert '10.0.0.7 - - [' in line
        assert '"GET /test" 200 7' in line

    def test_json_log(self, server_request, ok_handler, caplog):
        """Test the JSON log format."""
        caplog.set_level(logging.INFO, logger="httpmodel.access")
        route = Route().with_middleware(LoggingMiddleware(log_format="json"))

        route.dispatch(server_request.with_uri(server_request.get_uri().with_query("a=1")), None, ok_handler)

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["method"] == "GET"
        assert entry["path"] == "/test"
        assert entry["query"] == "a=1"
        assert entry["status_code"] == 200
        assert entry["client_ip"] == "10.0.0.7"

    def test_incoming_request_id_reused(self, server_request):
        """Test an incoming X-Request-ID is propagated."""
        request = server_request.with_header("X-Request-ID", "abc123")
        seen = {}

        def handler(req):
            seen["id"] = req.get_attribute("request_id")
            return Response(204)

        response = Route().with_middleware(LoggingMiddleware()).dispatch(request, None, handler)

        assert seen["id"] == "abc123"
        assert response.get_header_line("X-Request-ID") == "abc123"

    def test_request_id_header_optional(self, server_request, ok_handler):
        """Test include_request_id=False leaves the response alone."""
        route = Route().with_middleware(LoggingMiddleware(include_request_id=False))

        assert not route.dispatch(server_request, None, ok_handler).has_header("X-Request-ID")

    def test_skip_paths(self, server_request, ok_handler, caplog):
        """Test skipped paths are not logged."""
        caplog.set_level(logging.INFO, logger="httpmodel.access")
        route = Route().with_middleware(LoggingMiddleware(skip_paths=["/test"]))

        route.dispatch(server_request, None, ok_handler)

        assert not [r for r in caplog.records if r.name == "httpmodel.access"]

    def test_failure_logged_and_reraised(self, server_request, caplog):
        """Test handler exceptions are logged at ERROR and propagate."""
        caplog.set_level(logging.INFO, logger="httpmodel.access")

        def boom(request):
            raise RuntimeError("kaput")

        with pytest.raises(RuntimeError):
            Route().with_middleware(LoggingMiddleware()).dispatch(server_request, None, boom)

        assert caplog.records[-1].levelno == logging.ERROR
        assert "kaput" in caplog.records[-1].getMessage()

    def test_invalid_format(self):
        """Test an unknown log format is rejected."""
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")

    def test_request_log_text(self):
        """Test RequestLog formatting."""
        entry = RequestLog(
            request_id="r1", method="POST", path="/x", query="y=1", client_ip="1.2.3.4",
            user_agent="-", status_code=201, content_length=3, duration_ms=1.234,
            timestamp="01/Jan/2026:00:00:00 +0000",
        )

        assert entry.to_text() == '1.2.3.4 - - [01/Jan/2026:00:00:00 +0000] "POST /x?y=1" 201 3 1.23ms'
        assert entry.to_dict()["duration_ms"] == 1.23
