"""
=============================================================================
MEDIA TYPES
=============================================================================

Maps file extensions to MIME types and picks Content-Type values apart.

Used in three places:

    Client   multipart file parts      get_mime_type("avatar.png") → image/png
    Factory  parsed-body selection     media_type("application/json; charset=utf-8")
                                                                   → application/json
    CLI      printing response bodies  is_text_type("application/json") → True

=============================================================================
CONTENT-TYPE ANATOMY
=============================================================================

    Content-Type: application/json; charset=utf-8
                  ──────┬──────── ───────┬──────
                        │                │
                   media type        parameters (ignored for matching)

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Structured data
    ".json": "application/json",
    ".xml": "application/xml",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
}

# "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"

FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM_DATA = "multipart/form-data"

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "application/x-www-form-urlencoded",
    "image/svg+xml",
}


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    MIME type for a file name, by extension.

        >>> get_mime_type("report.PDF")
        'application/pdf'
        >>> get_mime_type("blob.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def media_type(content_type: str) -> str:
    """Strip parameters and case from a Content-Type value."""
    return content_type.split(";", 1)[0].strip().lower()


def is_text_type(content_type: str) -> bool:
    """True for text/*, +json/+xml suffixes and the common textual application types."""
    mime = media_type(content_type)
    if mime.startswith("text/"):
        return True
    if mime.endswith("+json") or mime.endswith("+xml"):
        return True
    return mime in _TEXT_APPLICATION_TYPES
