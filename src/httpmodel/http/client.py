"""
=============================================================================
HTTP CLIENT
=============================================================================

Sends a Request over the network and returns a Response, on top of the
standard library's urllib.request.

=============================================================================
SEND FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         send_request()                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ──► headers joined ", " + User-Agent/Referer defaults     │
    │          ──► body: raw bytes, or multipart when files are configured│
    │          ──► opener: TLS context, redirect policy, cookie jar       │
    │          ──► urlopen                                                │
    │                 │                                                    │
    │        2xx/3xx  │  4xx/5xx (HTTPError)        URLError / OSError    │
    │                 ▼          ▼                          ▼             │
    │              Response   Response                TransportError      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

An HTTP error status is an answer, not a failure: it comes back as an
ordinary Response. Only a request that produced no answer at all raises.

=============================================================================
HTTPS
=============================================================================

HTTPS requires ``ca_bundle`` to point at an existing PEM file. Without
one, ClientConfigurationError is raised before any connection is made;
certificate checking is never silently switched off.

=============================================================================
"""

import http.client
import json
import logging
import os
import shutil
import ssl
import uuid
import urllib.error
import urllib.request
from http.cookiejar import LoadError, MozillaCookieJar
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from ..config import ClientConfig
from ..exceptions import ClientConfigurationError, ClientError, TransportError, ValidationError
from .mime_types import FORM_URLENCODED, MULTIPART_FORM_DATA, get_mime_type
from .request import Request
from .response import Response
from .uri import Uri


logger = logging.getLogger(__name__)


class _NoRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Leaves 3xx responses alone; urllib then surfaces them as HTTPError."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


def encode_multipart(form_body: bytes, files: Mapping[str, str]) -> Tuple[bytes, str]:
    """
    Build a multipart/form-data body.

    Args:
        form_body: urlencoded fields to carry over as plain parts
        files: field name → local path

    Returns:
        (body, Content-Type header value)
    """
    boundary = uuid.uuid4().hex
    parts: List[bytes] = []

    for name, value in parse_qsl(form_body.decode("utf-8", errors="replace"), keep_blank_values=True):
        parts.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'
            .encode("utf-8") + value.encode("utf-8") + b"\r\n"
        )

    for name, path in files.items():
        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise ClientError(f"Cannot read upload file {path!r}: {e}") from e
        filename = os.path.basename(path)
        parts.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"; '
            f'filename="{filename}"\r\nContent-Type: {get_mime_type(path)}\r\n\r\n'
            .encode("utf-8") + content + b"\r\n"
        )

    parts.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(parts), f"{MULTIPART_FORM_DATA}; boundary={boundary}"


class Client:
    """
    Synchronous HTTP client.

    Usage:
        client = Client(timeout=10)
        response = client.get("https://api.example.com/users",
                              headers={"Accept": "application/json"})
        created = client.post("https://api.example.com/users",
                              json={"name": "Ada"})

        # Any Request works too
        response = client.send_request(Request("PURGE", "http://cache/x"))

    Per-call keyword options (timeout, follow_redirects, download, files,
    ...) apply to that call only.
    """

    def __init__(self, config: Optional[ClientConfig] = None, **overrides):
        base = config if config is not None else ClientConfig.from_env()
        self._config = base.merged(**overrides)

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def get_config(self) -> ClientConfig:
        return self._config

    def set_timeout(self, timeout: Optional[float]) -> "Client":
        self._config.timeout = timeout
        return self

    def set_follow_redirects(self, follow_redirects: bool) -> "Client":
        self._config.follow_redirects = follow_redirects
        return self

    def set_cookie_jar(self, cookie_jar: Optional[str]) -> "Client":
        self._config.cookie_jar = cookie_jar
        return self

    def set_user_agent(self, user_agent: str) -> "Client":
        self._config.user_agent = user_agent
        return self

    def set_referer(self, referer: Optional[str]) -> "Client":
        self._config.referer = referer
        return self

    def set_ca_bundle(self, ca_bundle: Optional[str]) -> "Client":
        self._config.ca_bundle = ca_bundle
        return self

    def get_timeout(self) -> Optional[float]:
        return self._config.timeout

    def get_follow_redirects(self) -> bool:
        return self._config.follow_redirects

    def get_cookie_jar(self) -> Optional[str]:
        return self._config.cookie_jar

    def get_user_agent(self) -> str:
        return self._config.user_agent

    def get_referer(self) -> Optional[str]:
        return self._config.referer

    def get_ca_bundle(self) -> Optional[str]:
        return self._config.ca_bundle

    # =========================================================================
    # VERB HELPERS
    # =========================================================================

    def get(self, uri: Union[Uri, str], **options) -> Response:
        return self._send("GET", uri, options, with_body=False)

    def post(self, uri: Union[Uri, str], **options) -> Response:
        """POST; ``fields`` sends a form, ``json`` a JSON document, ``body`` raw content."""
        return self._send("POST", uri, options, with_body=True, with_fields=True)

    def put(self, uri: Union[Uri, str], **options) -> Response:
        return self._send("PUT", uri, options, with_body=True)

    def patch(self, uri: Union[Uri, str], **options) -> Response:
        return self._send("PATCH", uri, options, with_body=True)

    def delete(self, uri: Union[Uri, str], **options) -> Response:
        return self._send("DELETE", uri, options, with_body=True)

    def options(self, uri: Union[Uri, str], **options) -> Response:
        return self._send("OPTIONS", uri, options, with_body=False)

    def head(self, uri: Union[Uri, str], **options) -> Response:
        return self._send("HEAD", uri, options, with_body=False)

    def _send(
        self,
        method: str,
        uri: Union[Uri, str],
        options: Dict[str, Any],
        with_body: bool,
        with_fields: bool = False,
    ) -> Response:
        headers = dict(options.pop("headers", None) or {})
        body: Union[str, bytes, None] = None

        if with_body:
            fields = options.pop("fields", None) if with_fields else None
            payload = options.pop("json", None)
            body = options.pop("body", None)
            if fields:
                body = urlencode(fields, doseq=True)
                headers.setdefault("Content-Type", FORM_URLENCODED)
            elif payload is not None:
                body = json.dumps(payload)
                headers["Content-Type"] = "application/json"

        config = self._config.merged(**options)
        request = Request(method, uri, headers, body)
        return self._transfer(request, config)

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def send_request(self, request: Request) -> Response:
        """Send ``request`` with the client's own settings."""
        if not isinstance(request, Request):
            raise ValidationError(f"Expected a Request, {type(request).__name__} given")
        return self._transfer(request, self._config)

    def _transfer(self, request: Request, config: ClientConfig) -> Response:
        url = str(request.get_uri())
        method = request.get_method()
        headers = {
            name: ", ".join(values) for name, values in request.get_headers().items()
        }
        if config.user_agent and not request.has_header("User-Agent"):
            headers["User-Agent"] = config.user_agent
        if config.referer and not request.has_header("Referer"):
            headers["Referer"] = config.referer

        data = self._request_data(request, config, headers)
        handlers = self._build_handlers(request.get_uri(), config)
        cookie_jar = self._load_cookie_jar(config)
        if cookie_jar is not None:
            handlers.append(urllib.request.HTTPCookieProcessor(cookie_jar))

        opener = urllib.request.build_opener(*handlers)
        raw_request = urllib.request.Request(url, data=data, headers=headers, method=method)
        open_kwargs = {}
        if config.timeout is not None:
            open_kwargs["timeout"] = config.timeout

        logger.info(f"{method} {url}")
        try:
            raw = opener.open(raw_request, **open_kwargs)
        except urllib.error.HTTPError as e:
            raw = e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}", request) from e

        try:
            response = self._build_response(raw, config)
        except (http.client.HTTPException, OSError) as e:
            logger.error(f"{method} {url} failed while reading the response: {e}")
            raise TransportError(f"{method} {url} failed: {e}", request) from e
        finally:
            raw.close()

        if cookie_jar is not None:
            cookie_jar.save(ignore_discard=True, ignore_expires=True)

        logger.debug(
            f"{method} {url} → {response.get_status_code()} {response.get_reason_phrase()}"
        )
        return response

    @staticmethod
    def _request_data(request: Request, config: ClientConfig, headers: Dict[str, str]) -> Optional[bytes]:
        method = request.get_method()
        if method == "GET":
            return None

        body = request.get_body()
        size = body.get_size()
        if body.is_seekable() and size:
            body.rewind()
        content = body.get_contents() if body.is_readable() else b""

        if config.files:
            data, content_type = encode_multipart(content, config.files)
            for name in [n for n in headers if n.lower() == "content-type"]:
                del headers[name]
            headers["Content-Type"] = content_type
            return data

        if content or method in ("POST", "PUT", "PATCH"):
            return content
        return None

    @staticmethod
    def _build_handlers(uri: Uri, config: ClientConfig) -> list:
        handlers: list = []
        if uri.get_scheme() == "https":
            if not config.ca_bundle or not os.path.isfile(config.ca_bundle):
                raise ClientConfigurationError(
                    "Invalid Certificate Authority (CA) bundle path, you need a valid "
                    "copy of it to perform HTTPS requests."
                )
            context = ssl.create_default_context(cafile=config.ca_bundle)
            handlers.append(urllib.request.HTTPSHandler(context=context))
        if not config.follow_redirects:
            handlers.append(_NoRedirectHandler())
        return handlers

    @staticmethod
    def _load_cookie_jar(config: ClientConfig) -> Optional[MozillaCookieJar]:
        if not config.cookie_jar:
            return None
        jar = MozillaCookieJar(config.cookie_jar)
        if os.path.exists(config.cookie_jar):
            try:
                jar.load(ignore_discard=True, ignore_expires=True)
            except (LoadError, OSError) as e:
                raise ClientConfigurationError(
                    f"Cookie jar {config.cookie_jar!r} cannot be loaded: {e}"
                ) from e
        return jar

    @staticmethod
    def _build_response(raw: Any, config: ClientConfig) -> Response:
        if config.download:
            with open(config.download, "wb") as f:
                shutil.copyfileobj(raw, f)
            content = b""
        else:
            content = raw.read()

        status = getattr(raw, "status", None) or raw.getcode()
        response = Response(status, body=content, reason=getattr(raw, "reason", "") or "")

        for name, value in raw.headers.items():
            try:
                response = response.with_added_header(name.strip().lower(), value)
            except ValidationError:
                logger.warning(f"Dropping malformed response header {name!r}")
        return response
