"""Driver contract shared by every filesystem backend.

Defines the backend capability tag, the constants callers pass to
stream and content operations, and the Driver protocol that LocalDriver
and MemoryDriver both satisfy.
"""

from __future__ import annotations

import enum
import fcntl
import os
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

LOCK_SH = fcntl.LOCK_SH
LOCK_EX = fcntl.LOCK_EX
LOCK_NB = fcntl.LOCK_NB
LOCK_UN = fcntl.LOCK_UN

SEEK_SET = os.SEEK_SET
SEEK_CUR = os.SEEK_CUR
SEEK_END = os.SEEK_END

# Content flags for file_put_contents / file_get_contents. Bit values
# stay clear of the LOCK_* bits so they can be OR-ed together.
FILE_APPEND = 8
FILE_TEXT = 32

Content = str | bytes | Iterable[str | bytes]


class BackendKind(enum.Enum):
    """Storage backend a driver is bound to.

    rename/copy/symlink compare kinds to decide between the native
    primitive and a content-transfer fallback.
    """

    LOCAL = "local"
    MEMORY = "memory"


@runtime_checkable
class Driver(Protocol):
    """Operations every filesystem driver provides.

    Failures surface as FileSystemException (or one of its subclasses).
    Only ``search``, ``get_real_path`` and ``end_of_file`` signal failure
    without raising.
    """

    kind: BackendKind
    scheme: str

    def same_backend(self, other: Driver) -> bool:
        """Whether native primitives can span this driver and ``other``."""
        ...

    # Queries

    def is_exists(self, path: str) -> bool: ...

    def stat(self, path: str) -> os.stat_result: ...

    def is_readable(self, path: str) -> bool: ...

    def is_file(self, path: str) -> bool: ...

    def is_directory(self, path: str) -> bool: ...

    def is_writable(self, path: str) -> bool: ...

    def get_parent_directory(self, path: str) -> str: ...

    def get_real_path(self, path: str) -> str | None: ...

    # Enumeration

    def read_directory(self, path: str) -> list[str]: ...

    def read_directory_recursively(self, path: str) -> list[str]: ...

    def search(self, pattern: str, path: str) -> list[str]: ...

    # Mutation

    def create_directory(self, path: str, permissions: int = 0o777) -> None: ...

    def delete_file(self, path: str) -> None: ...

    def delete_directory(self, path: str) -> None: ...

    def change_permissions(self, path: str, permissions: int) -> None: ...

    def touch(self, path: str, modification_time: float | None = None) -> None: ...

    def rename(
        self, old_path: str, new_path: str, target_driver: Driver | None = None
    ) -> None: ...

    def copy(
        self, source: str, destination: str, target_driver: Driver | None = None
    ) -> None: ...

    def symlink(
        self, source: str, destination: str, target_driver: Driver | None = None
    ) -> None: ...

    # Streams

    def file_open(self, path: str, mode: str) -> Any: ...

    def file_read(self, handle: Any, length: int) -> str | bytes: ...

    def file_read_line(
        self, handle: Any, length: int, ending: str | bytes | None = None
    ) -> str | bytes: ...

    def file_get_csv(
        self,
        handle: Any,
        length: int = 0,
        delimiter: str = ",",
        enclosure: str = '"',
        escape: str = "\\",
    ) -> list[str] | None: ...

    def file_tell(self, handle: Any) -> int: ...

    def file_seek(self, handle: Any, offset: int, whence: int = SEEK_SET) -> int: ...

    def end_of_file(self, handle: Any) -> bool: ...

    def file_write(self, handle: Any, data: str | bytes) -> int: ...

    def file_put_csv(
        self,
        handle: Any,
        fields: Iterable[Any],
        delimiter: str = ",",
        enclosure: str = '"',
    ) -> int: ...

    def file_flush(self, handle: Any) -> None: ...

    def file_lock(self, handle: Any, mode: int = LOCK_EX) -> None: ...

    def file_unlock(self, handle: Any) -> None: ...

    def file_close(self, handle: Any) -> None: ...

    def file_get_contents(
        self,
        path: str,
        flag: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> str | bytes: ...

    def file_put_contents(
        self, path: str, content: Content, mode: int | None = None
    ) -> int: ...

    # Paths

    def get_absolute_path(
        self, base_path: str, path: str, scheme: str | None = None
    ) -> str: ...

    def get_relative_path(self, base_path: str, path: str | None = None) -> str: ...

    def get_real_path_safety(self, path: str) -> str: ...
