"""Exception types raised by filesystem drivers.

Every failure a driver observes at the OS boundary is surfaced as a
FileSystemException. The subclasses refine the cause for callers that
want to branch on it; catching FileSystemException catches them all.
"""

from __future__ import annotations

import errno as _errno
import logging
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class FileSystemException(Exception):
    """A filesystem operation failed.

    Attributes:
        message: Human-readable description, including the captured
            OS warning text when one was available.
        cause: The lower-level error that triggered this one, if any.
        errno: Error number captured from the failing call, or None.
    """

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        errno: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if errno is None and isinstance(cause, (OSError, FileSystemException)):
            errno = cause.errno
        self.errno = errno
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message


class PathNotFoundException(FileSystemException):
    """The path (or one of its parents) does not exist."""


class PermissionDeniedException(FileSystemException):
    """The OS refused access to the path."""


class PathExistsException(FileSystemException):
    """The target already exists, or a directory is not empty."""


_ERRNO_KINDS: dict[int, type[FileSystemException]] = {
    _errno.ENOENT: PathNotFoundException,
    _errno.ENOTDIR: PathNotFoundException,
    _errno.EACCES: PermissionDeniedException,
    _errno.EPERM: PermissionDeniedException,
    _errno.EEXIST: PathExistsException,
    _errno.ENOTEMPTY: PathExistsException,
}


def exception_class(error: BaseException | None) -> type[FileSystemException]:
    """Pick the taxonomy member matching a captured error."""
    if isinstance(error, FileSystemException):
        return type(error)
    if isinstance(error, OSError) and error.errno in _ERRNO_KINDS:
        return _ERRNO_KINDS[error.errno]
    return FileSystemException


def warning_message(error: BaseException | None) -> str | None:
    """Render the warning captured from a single failing call.

    Returns:
        ``"Warning!<text>"`` or None when nothing was captured.
    """
    if error is None:
        return None
    if isinstance(error, FileSystemException):
        return error.message or None
    if isinstance(error, OSError) and error.strerror:
        text = error.strerror
        if error.filename is not None:
            text = f"{text}: '{error.filename}'"
        if error.filename2 is not None:
            text = f"{text} -> '{error.filename2}'"
    else:
        text = str(error)
    return f"Warning!{text}" if text else None


def build_exception(
    template: str, *args: object, error: BaseException | None = None
) -> FileSystemException:
    """Build the exception for a failed call.

    The template receives ``args`` followed by the warning text as its
    final positional field.
    """
    warning = warning_message(error)
    message = template.format(*args, warning or "").rstrip()
    return exception_class(error)(message, cause=error)


@contextmanager
def os_errors(template: str, *args: object) -> Iterator[None]:
    """Translate errors raised by the wrapped OS call.

    ``OSError`` and ``ValueError`` (closed handles, embedded null bytes)
    are re-raised as FileSystemException built from ``template``.
    FileSystemException raised inside the block passes through untouched.

    Example::

        with os_errors('The file "{}" cannot be deleted {}', path):
            os.unlink(path)
    """
    try:
        yield
    except FileSystemException:
        raise
    except (OSError, ValueError) as e:
        exc = build_exception(template, *args, error=e)
        logger.debug("filesystem call failed: %s", exc.message)
        raise exc from e


def from_error(error: BaseException) -> FileSystemException:
    """Wrap an error raised while iterating a directory, keeping its text."""
    return exception_class(error)(str(error), cause=error)
