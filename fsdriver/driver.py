"""Behaviour common to every concrete driver.

BaseDriver owns the scheme, the pure path helpers and the decision
shared by rename/copy/symlink: a target on the same backend gets the
native primitive, any other target gets a content transfer (rename,
copy) or a refusal (symlink).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .base import BackendKind, Content, Driver
from .exceptions import FileSystemException, build_exception, os_errors
from .paths import (
    absolute_path,
    parent_directory,
    real_path_safety,
    relative_path,
    scheme_prefix,
)
from .streams import StreamOperations

logger = logging.getLogger(__name__)

RENAME_FAILED = 'The "{}" path cannot be renamed into "{}" {}'
COPY_FAILED = 'The file or directory "{}" cannot be copied to "{}" {}'
SYMLINK_FAILED = 'Cannot create a symlink for "{}" and place it to "{}" {}'
WRITE_FAILED = 'The specified "{}" file could not be written {}'


def to_bytes(content: Content) -> bytes:
    """Flatten file content to bytes; str is encoded as UTF-8."""
    if isinstance(content, str):
        return content.encode("utf-8")
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    return b"".join(to_bytes(chunk) for chunk in content)


def check_written(path: str, written: int | None, expected: int) -> int:
    """Raise unless a one-shot write stored every byte it was given."""
    if written is None:
        return expected
    if written < expected:
        raise build_exception(
            WRITE_FAILED, path, error=OSError(f"short write: {written} of {expected} bytes")
        )
    return written


def child_path(path: str, name: str) -> str:
    """Join a directory path and an entry name with a single ``/``."""
    return f"{path.rstrip('/')}/{name}"


class BaseDriver(StreamOperations):
    """Shared skeleton for LocalDriver and MemoryDriver.

    Subclasses set ``kind`` and implement the native primitives
    ``_native_rename``, ``_native_copy`` and ``_native_symlink``.
    """

    kind: BackendKind

    def __init__(self, scheme: str = ""):
        self.scheme = scheme or ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(scheme={self.scheme!r})"

    def same_backend(self, other: Driver) -> bool:
        """Whether ``other`` is bound to the same kind of storage."""
        return getattr(other, "kind", None) is self.kind

    # -------------------------------------------------------------------------
    # Path utilities
    # -------------------------------------------------------------------------

    def get_parent_directory(self, path: str) -> str:
        return parent_directory(scheme_prefix(self.scheme) + path)

    def get_absolute_path(
        self, base_path: str, path: str, scheme: str | None = None
    ) -> str:
        """Anchor ``path`` under ``base_path``.

        ``scheme`` overrides the prefix for this call only; the driver's
        own scheme is not applied implicitly.
        """
        return absolute_path(base_path, path, scheme)

    def get_relative_path(self, base_path: str, path: str | None = None) -> str:
        return relative_path(base_path, path)

    def get_real_path_safety(self, path: str) -> str:
        return real_path_safety(path)

    # -------------------------------------------------------------------------
    # Cross-backend operations
    # -------------------------------------------------------------------------

    def rename(
        self, old_path: str, new_path: str, target_driver: Driver | None = None
    ) -> None:
        """Rename ``old_path`` to ``new_path``, possibly on another backend.

        Across backends the content is read here, written through
        ``target_driver`` and the source is deleted only once that write
        has succeeded.

        Raises:
            FileSystemException: If the rename, the transfer, or the
                removal of the source fails.
        """
        target = target_driver or self
        if self.same_backend(target):
            with os_errors(RENAME_FAILED, old_path, new_path):
                self._native_rename(old_path, new_path)
            return

        logger.info(
            "Renaming %s across backends (%s -> %s)",
            old_path,
            self.kind.value,
            target.kind.value,
        )
        self._transfer(old_path, new_path, target, RENAME_FAILED)
        try:
            self.delete_file(old_path)
        except FileSystemException as e:
            raise build_exception(RENAME_FAILED, old_path, new_path, error=e) from e

    def copy(
        self, source: str, destination: str, target_driver: Driver | None = None
    ) -> None:
        """Copy a file, possibly onto another backend."""
        target = target_driver or self
        if self.same_backend(target):
            with os_errors(COPY_FAILED, source, destination):
                self._native_copy(source, destination)
            return

        logger.info(
            "Copying %s across backends (%s -> %s)",
            source,
            self.kind.value,
            target.kind.value,
        )
        self._transfer(source, destination, target, COPY_FAILED)

    def symlink(
        self, source: str, destination: str, target_driver: Driver | None = None
    ) -> None:
        """Create ``destination`` as a symlink to ``source``.

        Raises:
            FileSystemException: If ``target_driver`` is on another
                backend or the OS refuses the link.
        """
        target = target_driver or self
        if not self.same_backend(target):
            raise build_exception(
                SYMLINK_FAILED,
                source,
                destination,
                error=ValueError("symlinks cannot span storage backends"),
            )
        with os_errors(SYMLINK_FAILED, source, destination):
            self._native_symlink(source, destination)

    def _transfer(
        self, source: str, destination: str, target: Driver, template: str
    ) -> None:
        try:
            content = self.file_get_contents(source)
            target.file_put_contents(destination, content)
        except FileSystemException as e:
            raise build_exception(template, source, destination, error=e) from e

    def change_permissions_recursively(
        self, path: str, dir_permissions: int, file_permissions: int
    ) -> None:
        """Apply permissions to ``path`` and everything below it.

        Directories receive ``dir_permissions``, everything else
        ``file_permissions``. Symlinks are left alone. Descendants are
        changed before their parents.
        """
        entries: Iterable[str] = []
        if self.is_directory(path):
            entries = self.read_directory_recursively(path)
        for entry in [*entries, path]:
            if self._is_link(entry):
                continue
            permissions = dir_permissions if self.is_directory(entry) else file_permissions
            self.change_permissions(entry, permissions)

    # -------------------------------------------------------------------------
    # Provided by subclasses
    # -------------------------------------------------------------------------

    def _native_rename(self, old_path: str, new_path: str) -> None:
        raise NotImplementedError

    def _native_copy(self, source: str, destination: str) -> None:
        raise NotImplementedError

    def _native_symlink(self, source: str, destination: str) -> None:
        raise NotImplementedError

    def _is_link(self, path: str) -> bool:
        return False

    def is_directory(self, path: str) -> bool:
        raise NotImplementedError

    def read_directory_recursively(self, path: str) -> list[str]:
        raise NotImplementedError

    def change_permissions(self, path: str, permissions: int) -> None:
        raise NotImplementedError

    def delete_file(self, path: str) -> None:
        raise NotImplementedError

    def file_get_contents(
        self, path: str, flag: int | None = None, context: Any = None
    ) -> str | bytes:
        raise NotImplementedError
