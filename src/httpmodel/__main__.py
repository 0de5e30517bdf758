"""
=============================================================================
HTTPMODEL CLI ENTRY POINT
=============================================================================

Send one HTTP request from the command line through Client.

=============================================================================
USAGE
=============================================================================

    # Simple GET
    python -m httpmodel GET https://example.com/

    # Show response headers too
    python -m httpmodel GET https://example.com/ -i

    # POST a form / JSON document
    python -m httpmodel POST https://httpbin.org/post -d "name=Ada&lang=py"
    python -m httpmodel POST https://httpbin.org/post --json '{"name": "Ada"}'

    # Custom headers, timeout, no redirects
    python -m httpmodel GET https://example.com/ -H "Accept: text/html" \\
        --timeout 5 --no-redirect

    # Save the body to a file
    python -m httpmodel GET https://example.com/logo.png -o logo.png

=============================================================================
EXIT STATUS
=============================================================================

    0   2xx or 3xx response
    1   4xx or 5xx response
    2   the request could not be made (bad options, TLS setup, network)

=============================================================================
"""

import argparse
import json
import sys
from typing import Dict, List, Optional

from . import __version__
from .config import ClientConfig, LOG_LEVELS
from .exceptions import HttpModelError
from .http.client import Client
from .http.mime_types import is_text_type
from .http.request import Request
from .http.response import Response
from .logging_utils import configure_logging


def parse_header_args(values: List[str]) -> Dict[str, List[str]]:
    """Turn repeated ``-H "Name: value"`` options into a header dict."""
    headers: Dict[str, List[str]] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got {item!r}")
        headers.setdefault(name.strip(), []).append(value.strip())
    return headers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m httpmodel",
        description="Send an HTTP request and print the response",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpmodel GET https://example.com/
  python -m httpmodel POST https://httpbin.org/post -d "a=1&b=2"
  python -m httpmodel PUT https://httpbin.org/put --json '{"a": 1}' -i
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("method", help="HTTP method (GET, POST, ...)")
    parser.add_argument("url", help="Absolute URL to request")
    parser.add_argument(
        "--header", "-H",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Request header (repeatable)",
    )

    body = parser.add_mutually_exclusive_group()
    body.add_argument("--data", "-d", help="Raw request body")
    body.add_argument("--json", dest="json_body", metavar="JSON", help="JSON request body")

    # ─────────────────────────────────────────────────────────────────────
    # TRANSPORT
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--timeout", type=float, default=None, help="Socket timeout in seconds")
    parser.add_argument("--cacert", default=None, help="CA bundle for HTTPS")
    parser.add_argument(
        "--no-redirect",
        action="store_true",
        help="Return 3xx responses instead of following them",
    )
    parser.add_argument("--user-agent", default=None, help="User-Agent header value")

    # ─────────────────────────────────────────────────────────────────────
    # OUTPUT
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--output", "-o", default=None, help="Write the body to this file")
    parser.add_argument(
        "--include", "-i",
        action="store_true",
        help="Print response headers",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: HTTP_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--version", "-v", action="version", version=f"httpmodel {__version__}")
    return parser


def write_response(response: Response, include_headers: bool, downloaded: bool) -> None:
    """Print status line, optional headers, then the body."""
    out = sys.stdout
    out.write(
        f"HTTP/{response.get_protocol_version()} {response.get_status_code()} "
        f"{response.get_reason_phrase()}\n"
    )
    if include_headers:
        for name, values in response.get_headers().items():
            for value in values:
                out.write(f"{name}: {value}\n")
    out.write("\n")
    if downloaded:
        return

    body = bytes(response.get_body())
    if is_text_type(response.get_header_line("content-type") or "text/plain"):
        out.write(body.decode("utf-8", errors="replace"))
        if body and not body.endswith(b"\n"):
            out.write("\n")
    else:
        out.flush()
        sys.stdout.buffer.write(body)
    out.flush()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        headers = parse_header_args(args.header)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    # =========================================================================
    # CONFIGURATION: environment first, then command-line overrides
    # =========================================================================

    try:
        config = ClientConfig.from_env().merged(
            timeout=args.timeout,
            ca_bundle=args.cacert,
            user_agent=args.user_agent,
            download=args.output,
            log_level=args.log_level,
        )
        if args.no_redirect:
            config.follow_redirects = False
        config.validate()
    except HttpModelError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)

    # =========================================================================
    # REQUEST
    # =========================================================================

    body: Optional[str] = args.data
    if args.json_body is not None:
        try:
            body = json.dumps(json.loads(args.json_body))
        except ValueError as e:
            print(f"Error: --json is not valid JSON: {e}", file=sys.stderr)
            return 2
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = ["application/json"]

    try:
        request = Request(args.method, args.url, headers, body)
        response = Client(config).send_request(request)
    except HttpModelError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    write_response(response, args.include, downloaded=bool(args.output))
    return 0 if response.get_status_code() < 400 else 1


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    sys.exit(main())
