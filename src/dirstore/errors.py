"""Error definitions for DirStore.

Every failure the storage layer can report belongs to one ``ErrorKind``.
The HTTP status is derived from the kind through ``HTTP_STATUS`` so that
equivalent failures produce equivalent responses no matter which operation
raised them.
"""

import errno
from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    INVALID_ARGUMENT = "InvalidArgument"
    NOT_FOUND = "NotFound"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    CONFLICT = "Conflict"
    IO_FAILURE = "IOFailure"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.METHOD_NOT_ALLOWED: 405,
    ErrorKind.CONFLICT: 409,
    ErrorKind.IO_FAILURE: 500,
}


class DirStoreError(Exception):
    """A storage or request error with a kind and a one-line message.

    Attributes:
        kind: The error category.
        message: Human-readable error description.
    """

    kind: ErrorKind = ErrorKind.IO_FAILURE

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error description.
            kind: Overrides the class-level kind when given.
        """
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def http_status(self) -> int:
        """The HTTP status code for this error's kind."""
        return HTTP_STATUS[self.kind]


# -- Concrete kinds -------------------------------------------------------------


class InvalidArgument(DirStoreError):
    """The bucket name, key or request body is not acceptable."""

    kind = ErrorKind.INVALID_ARGUMENT


class NotFound(DirStoreError):
    """The bucket or object does not exist."""

    kind = ErrorKind.NOT_FOUND


class MethodNotAllowed(DirStoreError):
    """The HTTP method is not supported for the addressed resource."""

    kind = ErrorKind.METHOD_NOT_ALLOWED

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(message)


class Conflict(DirStoreError):
    """The filesystem state conflicts with the request (e.g. bucket not empty)."""

    kind = ErrorKind.CONFLICT


class IOFailure(DirStoreError):
    """Any other filesystem failure."""

    kind = ErrorKind.IO_FAILURE


_KIND_CLASSES: dict[ErrorKind, type[DirStoreError]] = {
    ErrorKind.INVALID_ARGUMENT: InvalidArgument,
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.CONFLICT: Conflict,
    ErrorKind.IO_FAILURE: IOFailure,
}


def classify_os_error(exc: OSError) -> ErrorKind:
    """Return the error kind for a low-level filesystem error.

    Args:
        exc: The OSError raised by a filesystem call.

    Returns:
        The matching ErrorKind.
    """
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, (FileExistsError, IsADirectoryError)):
        return ErrorKind.CONFLICT
    if exc.errno in (errno.ENOTEMPTY, errno.EEXIST):
        return ErrorKind.CONFLICT
    if exc.errno == errno.ENAMETOOLONG:
        return ErrorKind.INVALID_ARGUMENT
    return ErrorKind.IO_FAILURE


def translate_os_error(exc: OSError, context: str) -> DirStoreError:
    """Wrap a filesystem error with contextual text.

    Only the OS error description is kept, never the absolute path, so the
    message is safe to return to clients.

    Args:
        exc: The OSError raised by a filesystem call.
        context: What was being attempted, e.g. ``"failed to delete bucket"``.

    Returns:
        A DirStoreError subclass instance matching the error's kind.
    """
    kind = classify_os_error(exc)
    detail = exc.strerror or str(exc)
    return _KIND_CLASSES[kind](f"{context}: {detail}")
