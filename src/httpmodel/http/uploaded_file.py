"""
=============================================================================
UPLOADED FILES
=============================================================================

A file received through a multipart/form-data request, before the
application decides where to keep it.

=============================================================================
LIFECYCLE
=============================================================================

    ┌──────────┐   move_to(path)   ┌─────────┐
    │ PENDING  │ ────────────────► │  MOVED  │   (one way, no going back)
    └──────────┘                   └─────────┘
         │                              │
    get_stream() ok                get_stream()  → StreamError
    move_to()    ok                move_to()     → StreamError

An upload that arrived with an error code (UploadErrorCode != OK) never
has content: get_stream() and move_to() raise StreamError straight away.

The source is either a path on disk (the server's temporary file) or a
Stream. Paths are moved with shutil.move; streams are copied to the target
in 1 MiB chunks so large uploads never sit in memory twice.

=============================================================================
"""

import logging
import shutil
from enum import IntEnum
from typing import Optional, Union

from ..exceptions import StreamError, ValidationError
from .stream import Stream


logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


class UploadErrorCode(IntEnum):
    """Upload outcome codes, numbered like the classic CGI/PHP upload errors."""

    OK = 0
    INI_SIZE = 1        # Larger than the server-wide limit
    FORM_SIZE = 2       # Larger than the form's declared limit
    PARTIAL = 3         # Only part of the file arrived
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8       # An extension stopped the upload


class UploadedFile:
    """
    A pending upload.

    Usage:
        upload = UploadedFile("/tmp/php8f3a", 1024, UploadErrorCode.OK,
                              "avatar.png", "image/png")
        upload.move_to("/srv/avatars/42.png")
    """

    def __init__(
        self,
        stream_or_file: Union[Stream, str, object],
        size: Optional[int],
        error: int,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ):
        if isinstance(error, bool) or not isinstance(error, int):
            raise ValidationError("Upload file error status must be an integer")
        try:
            self._error = UploadErrorCode(error)
        except ValueError as e:
            raise ValidationError(f"Invalid error status for UploadedFile: {error}") from e

        if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
            raise ValidationError("Upload file size must be an integer")
        if client_filename is not None and not isinstance(client_filename, str):
            raise ValidationError("Upload file client filename must be a string or None")
        if client_media_type is not None and not isinstance(client_media_type, str):
            raise ValidationError("Upload file client media type must be a string or None")

        self._size = size
        self._client_filename = client_filename
        self._client_media_type = client_media_type
        self._file: Optional[str] = None
        self._stream: Optional[Stream] = None
        self._moved = False

        if self._error == UploadErrorCode.OK:
            if isinstance(stream_or_file, str) and stream_or_file != "":
                self._file = stream_or_file
            elif isinstance(stream_or_file, Stream):
                self._stream = stream_or_file
            elif hasattr(stream_or_file, "read"):
                self._stream = Stream(stream_or_file)
            else:
                raise ValidationError("Invalid stream or file provided for UploadedFile")

    def _validate_active(self) -> None:
        if self._error != UploadErrorCode.OK:
            raise StreamError("Cannot retrieve stream due to upload error")
        if self._moved:
            raise StreamError("Cannot retrieve stream after it has already been moved")

    def get_stream(self) -> Stream:
        self._validate_active()
        if self._stream is not None:
            return self._stream
        try:
            return Stream(open(self._file, "rb"))
        except OSError as e:
            raise StreamError(f"The file {self._file!r} cannot be opened: {e}") from e

    def move_to(self, target_path: str) -> None:
        """
        Move the upload to ``target_path``.

        Can only be called once; later calls raise StreamError.
        """
        self._validate_active()
        if not isinstance(target_path, str) or target_path == "":
            raise ValidationError("Invalid path provided for move operation; must be a non-empty string")

        if self._file is not None:
            try:
                shutil.move(self._file, target_path)
            except OSError as e:
                raise StreamError(
                    f"Uploaded file could not be moved to {target_path!r}: {e}"
                ) from e
        else:
            stream = self.get_stream()
            if stream.is_seekable():
                stream.rewind()
            try:
                with open(target_path, "wb") as dest:
                    while not stream.eof():
                        chunk = stream.read(COPY_CHUNK_SIZE)
                        if not chunk:
                            break
                        dest.write(chunk)
            except OSError as e:
                raise StreamError(
                    f"Uploaded file could not be moved to {target_path!r}: {e}"
                ) from e

        self._moved = True
        logger.debug(f"Moved upload {self._client_filename!r} to {target_path}")

    def get_size(self) -> Optional[int]:
        return self._size

    def get_error(self) -> UploadErrorCode:
        return self._error

    def get_client_filename(self) -> Optional[str]:
        return self._client_filename

    def get_client_media_type(self) -> Optional[str]:
        return self._client_media_type

    def __repr__(self) -> str:
        return (
            f"<UploadedFile {self._client_filename!r} size={self._size} "
            f"error={self._error.name}>"
        )
