"""Driver for the host operating system's filesystem.

Wraps ``os``, ``shutil`` and ``glob`` so that every failure surfaces as
a FileSystemException carrying the warning captured from the failing
call itself.
"""

from __future__ import annotations

import errno
import fcntl
import glob
import logging
import os
import shutil
import stat as stat_mod
from collections.abc import Mapping
from typing import Any, IO

from .base import FILE_APPEND, FILE_TEXT, LOCK_EX, BackendKind, Content
from .driver import WRITE_FAILED, BaseDriver, check_written, child_path, to_bytes
from .exceptions import build_exception, from_error, os_errors
from .paths import expand_braces, scheme_prefix

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("", "file")

# stat() errors that mean "not there" rather than "could not look".
_ABSENT = (errno.ENOENT, errno.ENOTDIR, errno.ELOOP)

QUERY_FAILED = "Error occurred during execution {}"


class LocalDriver(BaseDriver):
    """Filesystem driver for local disk.

    Paths may be given plain or as ``file://`` URLs; either form reaches
    the same host path.

    Example:
        >>> driver = LocalDriver()
        >>> driver.file_put_contents("/tmp/hello.txt", b"hi")
        2
        >>> driver.file_get_contents("/tmp/hello.txt")
        b'hi'
    """

    kind = BackendKind.LOCAL

    def __init__(self, scheme: str = ""):
        """Initialize the driver.

        Args:
            scheme: Either "" (plain host paths) or "file".

        Raises:
            ValueError: If the scheme cannot be served from local disk.
        """
        if scheme not in SUPPORTED_SCHEMES:
            raise ValueError(
                f"Unsupported scheme for local driver: {scheme!r}. Use '' or 'file'."
            )
        super().__init__(scheme)

    def _os_path(self, path: str) -> str:
        """Map a driver path to the host path handed to the OS."""
        prefix = scheme_prefix("file")
        if path.startswith(prefix):
            return path[len(prefix):]
        return path

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _stat_or_none(self, path: str) -> os.stat_result | None:
        with os_errors(QUERY_FAILED):
            try:
                return os.stat(self._os_path(path))
            except OSError as e:
                if e.errno in _ABSENT:
                    return None
                raise

    def is_exists(self, path: str) -> bool:
        """Check if a file or directory exists."""
        return self._stat_or_none(path) is not None

    def stat(self, path: str) -> os.stat_result:
        """Return the OS stat record for ``path``, uninterpreted."""
        with os_errors("Cannot gather stats! {}"):
            return os.stat(self._os_path(path))

    def is_readable(self, path: str) -> bool:
        with os_errors(QUERY_FAILED):
            return os.access(self._os_path(path), os.R_OK)

    def is_file(self, path: str) -> bool:
        """Check if path is a regular file (symlinks are followed)."""
        result = self._stat_or_none(path)
        return result is not None and stat_mod.S_ISREG(result.st_mode)

    def is_directory(self, path: str) -> bool:
        """Check if path is a directory (symlinks are followed)."""
        result = self._stat_or_none(path)
        return result is not None and stat_mod.S_ISDIR(result.st_mode)

    def is_writable(self, path: str) -> bool:
        with os_errors(QUERY_FAILED):
            return os.access(self._os_path(path), os.W_OK)

    def get_real_path(self, path: str) -> str | None:
        """Resolve symlinks and relative segments.

        Returns:
            The canonical path, or None if it cannot be resolved.
        """
        try:
            return os.path.realpath(self._os_path(path), strict=True)
        except (OSError, ValueError):
            return None

    def _is_link(self, path: str) -> bool:
        return os.path.islink(self._os_path(path))

    # -------------------------------------------------------------------------
    # Enumeration
    # -------------------------------------------------------------------------

    def read_directory(self, path: str) -> list[str]:
        """List the immediate children of ``path``, sorted.

        Raises:
            FileSystemException: If the directory cannot be listed.
        """
        try:
            with os.scandir(self._os_path(path)) as entries:
                result = [child_path(path, entry.name) for entry in entries]
        except (OSError, ValueError) as e:
            raise from_error(e) from e
        return sorted(result)

    def read_directory_recursively(self, path: str) -> list[str]:
        """List every descendant of ``path``, children before their parent.

        Siblings are visited in name order. Symlinked directories are
        listed but not descended into. ``path`` itself is not included.
        """
        result: list[str] = []
        try:
            self._walk_child_first(path, result)
        except (OSError, ValueError) as e:
            raise from_error(e) from e
        return result

    def _walk_child_first(self, path: str, result: list[str]) -> None:
        with os.scandir(self._os_path(path)) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        for entry in entries:
            child = child_path(path, entry.name)
            if entry.is_dir(follow_symlinks=False):
                self._walk_child_first(child, result)
            result.append(child)

    def search(self, pattern: str, path: str) -> list[str]:
        """Glob ``pattern`` under ``path``; ``{a,b}`` alternatives are expanded.

        Returns an empty list instead of raising when globbing fails.
        """
        glob_pattern = path.rstrip("/") + "/" + pattern.lstrip("/")
        matches: dict[str, None] = {}
        try:
            for expanded in expand_braces(self._os_path(glob_pattern)):
                for match in sorted(glob.glob(expanded)):
                    matches.setdefault(match, None)
        except (OSError, ValueError) as e:
            logger.debug("search for %s failed, returning no matches: %s", glob_pattern, e)
            return []
        return list(matches)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def create_directory(self, path: str, permissions: int = 0o777) -> None:
        """Create ``path`` and any missing parents.

        Raises:
            FileSystemException: If the directory already exists or
                cannot be created.
        """
        with os_errors('Directory "{}" cannot be created {}', path):
            os.makedirs(self._os_path(path), mode=permissions)

    def delete_file(self, path: str) -> None:
        with os_errors('The file "{}" cannot be deleted {}', path):
            os.unlink(self._os_path(path))

    def delete_directory(self, path: str) -> None:
        """Delete ``path`` and everything below it, depth first.

        The first failure aborts the walk; whatever was removed before
        it stays removed.
        """
        with os_errors('The directory "{}" cannot be deleted {}', path):
            with os.scandir(self._os_path(path)) as it:
                entries = [(entry.name, entry.is_dir(follow_symlinks=False)) for entry in it]
        for name, is_dir in entries:
            child = child_path(path, name)
            if is_dir:
                self.delete_directory(child)
            else:
                self.delete_file(child)
        with os_errors('The directory "{}" cannot be deleted {}', path):
            os.rmdir(self._os_path(path))

    def change_permissions(self, path: str, permissions: int) -> None:
        with os_errors('Cannot change permissions for path "{}" {}', path):
            os.chmod(self._os_path(path), permissions)

    def change_owner(
        self, path: str, user: str | int | None = None, group: str | int | None = None
    ) -> None:
        """Change the owner and/or group of ``path`` (names or numeric ids)."""
        template = 'Cannot change owner for path "{}" {}'
        try:
            with os_errors(template, path):
                shutil.chown(self._os_path(path), user, group)
        except LookupError as e:
            raise build_exception(template, path, error=e) from e

    def touch(self, path: str, modification_time: float | None = None) -> None:
        """Set access and modification time, creating the file if missing.

        Args:
            path: File or directory to touch.
            modification_time: Timestamp to apply; falsy means now.
        """
        times = (modification_time, modification_time) if modification_time else None
        with os_errors('The file or directory "{}" cannot be touched {}', path):
            os_path = self._os_path(path)
            try:
                os.utime(os_path, times)
            except FileNotFoundError:
                with open(os_path, "ab"):
                    pass
                os.utime(os_path, times)

    def _native_rename(self, old_path: str, new_path: str) -> None:
        os.rename(self._os_path(old_path), self._os_path(new_path))

    def _native_copy(self, source: str, destination: str) -> None:
        shutil.copyfile(self._os_path(source), self._os_path(destination))

    def _native_symlink(self, source: str, destination: str) -> None:
        os.symlink(self._os_path(source), self._os_path(destination))

    # -------------------------------------------------------------------------
    # Streams
    # -------------------------------------------------------------------------

    def file_open(self, path: str, mode: str) -> IO[Any]:
        """Open ``path`` and return the handle; the caller must close it.

        Besides the usual Python modes, ``c`` and ``c+`` open for
        writing (and reading) creating the file if needed without
        truncating it. A ``t`` flag is ignored.
        """
        with os_errors('File "{}" cannot be opened {}', path):
            return self._open(self._os_path(path), mode)

    @staticmethod
    def _open(os_path: str, mode: str) -> IO[Any]:
        mode = mode.replace("t", "")
        if not mode.startswith("c"):
            return open(os_path, mode)

        update = "+" in mode
        flags = (os.O_RDWR if update else os.O_WRONLY) | os.O_CREAT
        fd = os.open(os_path, flags, 0o666)
        try:
            return os.fdopen(fd, ("r+" if update else "w") + ("b" if "b" in mode else ""))
        except BaseException:
            os.close(fd)
            raise

    def file_get_contents(
        self,
        path: str,
        flag: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> str | bytes:
        """Read a whole file.

        Args:
            path: File to read.
            flag: ``FILE_TEXT`` to decode and return str; bytes otherwise.
            context: Extra keyword arguments for ``open()`` such as
                ``encoding`` or ``errors``.
        """
        text = bool(flag and flag & FILE_TEXT)
        with os_errors('Cannot read contents from file "{}" {}', path):
            with open(self._os_path(path), "r" if text else "rb", **dict(context or {})) as handle:
                return handle.read()

    def file_put_contents(self, path: str, content: Content, mode: int | None = None) -> int:
        """Write a whole file in one call and return the byte count.

        Args:
            path: File to write; created if missing.
            content: str (UTF-8 encoded), bytes, or an iterable of chunks.
            mode: ``FILE_APPEND`` to append, ``LOCK_EX`` to hold an
                exclusive lock while writing. Flags may be combined.

        Raises:
            FileSystemException: If the file cannot be written in full.
        """
        data = to_bytes(content)
        flags = mode or 0
        append = bool(flags & FILE_APPEND)
        locking = bool(flags & LOCK_EX)
        open_mode = "ab" if append else ("cb" if locking else "wb")

        with os_errors(WRITE_FAILED, path):
            with self._open(self._os_path(path), open_mode) as handle:
                if locking:
                    fcntl.flock(handle.fileno(), LOCK_EX)
                    if not append:
                        handle.truncate(0)
                written = handle.write(data)
        return check_written(path, written, len(data))
