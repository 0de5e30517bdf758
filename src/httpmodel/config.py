"""
=============================================================================
CLIENT CONFIGURATION
=============================================================================

Centralized options for the HTTP client.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Per-call options                                               │
    │      └── client.get(url, timeout=5)                                 │
    │                                                                      │
    │   2. Client setters / constructor overrides                         │
    │      └── Client(timeout=10).set_user_agent("bot/1.0")               │
    │                                                                      │
    │   3. Environment variables (ClientConfig.from_env)                  │
    │      └── HTTP_TIMEOUT=10 python -m httpmodel GET https://...        │
    │                                                                      │
    │   4. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Layers 1 and 2 go through merged(), which returns a NEW config, so a
per-call override never leaks into the client's own settings.

=============================================================================
TLS TRUST
=============================================================================

HTTPS requests need a CA bundle file. from_env() looks in order at
HTTP_CA_BUNDLE, SSL_CERT_FILE and the interpreter's default verify paths.
A client without a bundle refuses HTTPS instead of silently skipping
certificate verification.

=============================================================================
"""

import dataclasses
import logging
import os
import ssl
from dataclasses import dataclass, field
from typing import Dict, Optional

from . import __version__
from .exceptions import ClientConfigurationError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_FALSE_VALUES = ("0", "false", "no", "off")


def default_ca_bundle() -> Optional[str]:
    """CA bundle from HTTP_CA_BUNDLE, SSL_CERT_FILE, or the ssl defaults."""
    return (
        os.getenv("HTTP_CA_BUNDLE")
        or os.getenv("SSL_CERT_FILE")
        or ssl.get_default_verify_paths().cafile
    )


@dataclass
class ClientConfig:
    """
    Configuration for the HTTP client.

    Usage:
        config = ClientConfig.from_env()
        config.validate()

        quick = config.merged(timeout=2.0, follow_redirects=False)
    """

    # ─────────────────────────────────────────────────────────────────────
    # TRANSPORT
    # ─────────────────────────────────────────────────────────────────────

    ca_bundle: Optional[str] = None
    """Path to a PEM CA bundle. Required for HTTPS."""

    timeout: Optional[float] = None
    """
    Socket timeout in seconds.
    None = wait forever.
    """

    follow_redirects: bool = True
    """Follow 3xx responses; when False the 3xx response itself is returned."""

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST DEFAULTS
    # ─────────────────────────────────────────────────────────────────────

    cookie_jar: Optional[str] = None
    """
    Path of a Mozilla-format cookie file.
    Loaded before each request (when it exists) and saved after it.
    """

    user_agent: str = f"httpmodel/{__version__}"
    """User-Agent sent when the request carries none."""

    referer: Optional[str] = None
    """Referer sent when the request carries none."""

    # ─────────────────────────────────────────────────────────────────────
    # BODIES
    # ─────────────────────────────────────────────────────────────────────

    download: Optional[str] = None
    """
    Write the response body to this path instead of keeping it.
    The returned Response then has an empty body.
    """

    files: Dict[str, str] = field(default_factory=dict)
    """
    Form field → local path. When set, the request body is sent as
    multipart/form-data: these files plus the fields of a urlencoded body.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "WARNING"
    """Level applied by the command-line tool (DEBUG ... CRITICAL)."""

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_CA_BUNDLE          CA bundle (then SSL_CERT_FILE, ssl defaults)
        HTTP_TIMEOUT            Socket timeout in seconds (default: none)
        HTTP_FOLLOW_REDIRECTS   "0"/"false"/"no"/"off" disables redirects
        HTTP_COOKIE_JAR         Cookie file path
        HTTP_USER_AGENT         User-Agent value
        HTTP_REFERER            Referer value
        HTTP_LOG_LEVEL          Logging level (default: WARNING)

        =====================================================================
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        try:
            timeout_value = float(timeout) if timeout else None
        except ValueError as e:
            raise ClientConfigurationError(f"HTTP_TIMEOUT must be a number, got {timeout!r}") from e

        return cls(
            ca_bundle=default_ca_bundle(),
            timeout=timeout_value,
            follow_redirects=os.getenv("HTTP_FOLLOW_REDIRECTS", "1").lower() not in _FALSE_VALUES,
            cookie_jar=os.getenv("HTTP_COOKIE_JAR"),
            user_agent=os.getenv("HTTP_USER_AGENT", f"httpmodel/{__version__}"),
            referer=os.getenv("HTTP_REFERER"),
            log_level=os.getenv("HTTP_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> None:
        """Fail fast on values the client could never honour."""
        if self.timeout is not None and self.timeout <= 0:
            raise ClientConfigurationError(f"timeout must be > 0, got {self.timeout}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ClientConfigurationError(
                f"Invalid log level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )

        if self.cookie_jar:
            directory = os.path.dirname(os.path.abspath(self.cookie_jar))
            if not os.path.isdir(directory):
                raise ClientConfigurationError(
                    f"Cookie jar directory does not exist: {directory}"
                )

    def merged(self, **overrides) -> "ClientConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        try:
            return dataclasses.replace(self, **values)
        except TypeError as e:
            raise ClientConfigurationError(f"Unknown client option: {e}") from e

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.WARNING)
