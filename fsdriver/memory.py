"""In-memory driver implementation."""

from __future__ import annotations

import errno as _errno
import fnmatch
import io
import os
import posixpath
import stat as stat_mod
import time
from collections.abc import Mapping
from typing import Any

from .base import FILE_APPEND, FILE_TEXT, LOCK_EX, LOCK_NB, LOCK_SH, BackendKind, Content
from .driver import WRITE_FAILED, BaseDriver, child_path, to_bytes
from .exceptions import from_error, os_errors
from .paths import expand_braces, scheme_prefix

QUERY_FAILED = "Error occurred during execution {}"


class MemoryStore:
    """Files, directories and advisory locks held in plain Python containers.

    Several MemoryDriver instances may share one store; they then count
    as the same backend.
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.modes: dict[str, int] = {"/": 0o755}
        self.mtimes: dict[str, float] = {"/": time.time()}
        # path -> {handle id: LOCK_SH | LOCK_EX}
        self.locks: dict[str, dict[int, int]] = {}

    def exists(self, key: str) -> bool:
        return key in self.files or key in self.dirs

    def children(self, key: str) -> list[str]:
        """Names of the immediate children of directory ``key``, sorted."""
        prefix = key.rstrip("/") + "/"
        entries: set[str] = set()
        for f in self.files:
            if f.startswith(prefix):
                entries.add(f[len(prefix):].split("/")[0])
        for d in self.dirs:
            if d.startswith(prefix) and d != key:
                entries.add(d[len(prefix):].split("/")[0])
        return sorted(entries)

    def require_parent(self, key: str) -> None:
        """Raise unless the parent of ``key`` is a writable directory."""
        parent = posixpath.dirname(key)
        if parent not in self.dirs:
            if parent in self.files:
                raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", parent)
            raise FileNotFoundError(_errno.ENOENT, "No such file or directory", key)
        if not self.modes.get(parent, 0o755) & stat_mod.S_IWUSR:
            raise PermissionError(_errno.EACCES, "Permission denied", key)

    def store(self, key: str, content: bytes) -> None:
        if key in self.dirs:
            raise IsADirectoryError(_errno.EISDIR, "Is a directory", key)
        if key not in self.files:
            self.require_parent(key)
            self.modes[key] = 0o644
        self.files[key] = content
        self.mtimes[key] = time.time()

    def forget(self, key: str) -> None:
        self.files.pop(key, None)
        self.dirs.discard(key)
        self.modes.pop(key, None)
        self.mtimes.pop(key, None)


class MemoryFile:
    """Handle returned by MemoryDriver.file_open.

    Content is buffered and written back to the store on flush() and
    close(). Text handles work in str, binary handles in bytes.
    """

    def __init__(self, store: MemoryStore, key: str, mode: str):
        self._store = store
        self.name = key
        self.mode = mode
        self._closed = False
        self._binary = "b" in mode
        self._append = "a" in mode
        self._readable = "r" in mode or "+" in mode
        self._writable = any(m in mode for m in "wacx+")

        content = store.files.get(key, b"")
        if "w" in mode:
            content = b""
        if self._binary:
            self._buffer: io.BytesIO | io.StringIO = io.BytesIO(content)
        else:
            self._buffer = io.StringIO(content.decode("utf-8"))
        if self._append:
            self._buffer.seek(0, os.SEEK_END)
        if self._writable:
            self._persist()

    def _check(self, readable: bool = False, writable: bool = False) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.name}")
        if readable and not self._readable:
            raise io.UnsupportedOperation("not readable")
        if writable and not self._writable:
            raise io.UnsupportedOperation("not writable")

    def _persist(self) -> None:
        content = self._buffer.getvalue()
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._store.store(self.name, content)

    def read(self, size: int = -1) -> str | bytes:
        self._check(readable=True)
        return self._buffer.read(size)

    def readline(self, size: int = -1) -> str | bytes:
        self._check(readable=True)
        return self._buffer.readline(size)

    def write(self, data: str | bytes) -> int:
        self._check(writable=True)
        if self._append:
            self._buffer.seek(0, os.SEEK_END)
        return self._buffer.write(data)  # type: ignore[arg-type]

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check()
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        self._check()
        return self._buffer.tell()

    def truncate(self, size: int | None = None) -> int:
        self._check(writable=True)
        return self._buffer.truncate(size)

    def fileno(self) -> int:
        raise io.UnsupportedOperation("fileno")

    def flush(self) -> None:
        self._check()
        if self._writable:
            self._persist()

    def close(self) -> None:
        if self._closed:
            return
        try:
            if self._writable:
                self._persist()
        finally:
            self._closed = True
            holders = self._store.locks.get(self.name)
            if holders is not None:
                holders.pop(id(self), None)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "MemoryFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class MemoryDriver(BaseDriver):
    """Driver over a MemoryStore.

    Implements the same contract as LocalDriver, raising the same
    exception types, without touching the disk. Useful as a second
    backend for cross-backend rename/copy and as a test double.

    Paths are absolute inside the store; relative paths are anchored at
    ``/`` and ``memory://`` prefixes are accepted. Symlinks are not
    supported. Locks are tracked per process and never block: a
    conflicting lock request fails immediately.
    """

    kind = BackendKind.MEMORY

    def __init__(self, store: MemoryStore | None = None, scheme: str = "memory"):
        super().__init__(scheme)
        self.store = store if store is not None else MemoryStore()

    def same_backend(self, other: Any) -> bool:
        return super().same_backend(other) and getattr(other, "store", None) is self.store

    def _key(self, path: str) -> str:
        prefix = scheme_prefix(self.scheme)
        if prefix and path.startswith(prefix):
            path = path[len(prefix):]
        return posixpath.normpath("/" + path.lstrip("/"))

    def _entry(self, path: str) -> str:
        key = self._key(path)
        if not self.store.exists(key):
            raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
        return key

    def _directory(self, path: str) -> str:
        key = self._entry(path)
        if key not in self.store.dirs:
            raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", path)
        return key

    # Queries

    def is_exists(self, path: str) -> bool:
        with os_errors(QUERY_FAILED):
            return self.store.exists(self._key(path))

    def stat(self, path: str) -> os.stat_result:
        with os_errors("Cannot gather stats! {}"):
            key = self._entry(path)
        mtime = self.store.mtimes.get(key, 0.0)
        if key in self.store.files:
            kind, links, size = stat_mod.S_IFREG, 1, len(self.store.files[key])
        else:
            kind, links, size = stat_mod.S_IFDIR, 2, 0
        return os.stat_result((
            kind | self.store.modes.get(key, 0o644),
            0, 0, links, os.getuid(), os.getgid(),
            size,
            int(mtime), int(mtime), int(mtime),
        ))

    def _has_mode(self, path: str, bit: int) -> bool:
        key = self._key(path)
        return self.store.exists(key) and bool(self.store.modes.get(key, 0) & bit)

    def is_readable(self, path: str) -> bool:
        return self._has_mode(path, stat_mod.S_IRUSR)

    def is_file(self, path: str) -> bool:
        return self._key(path) in self.store.files

    def is_directory(self, path: str) -> bool:
        return self._key(path) in self.store.dirs

    def is_writable(self, path: str) -> bool:
        return self._has_mode(path, stat_mod.S_IWUSR)

    def get_real_path(self, path: str) -> str | None:
        key = self._key(path)
        return key if self.store.exists(key) else None

    # Enumeration

    def read_directory(self, path: str) -> list[str]:
        try:
            key = self._directory(path)
        except OSError as e:
            raise from_error(e) from e
        return [child_path(path, name) for name in self.store.children(key)]

    def read_directory_recursively(self, path: str) -> list[str]:
        try:
            key = self._directory(path)
        except OSError as e:
            raise from_error(e) from e
        result: list[str] = []
        self._walk_child_first(path, key, result)
        return result

    def _walk_child_first(self, path: str, key: str, result: list[str]) -> None:
        for name in self.store.children(key):
            child, child_key = child_path(path, name), child_path(key, name)
            if child_key in self.store.dirs:
                self._walk_child_first(child, child_key, result)
            result.append(child)

    def search(self, pattern: str, path: str) -> list[str]:
        """Glob over the store: ``*`` and ``?`` never cross ``/``.

        Matches are reported under ``path`` as given, like read_directory.
        """
        base = self._key(path).rstrip("/")
        glob_pattern = base + "/" + pattern.lstrip("/")
        candidates = sorted((self.store.files.keys() | self.store.dirs) - {"/"})
        matches: dict[str, None] = {}
        for expanded in expand_braces(glob_pattern):
            parts = expanded.split("/")
            for key in candidates:
                if _glob_match(key.split("/"), parts):
                    matches.setdefault(path.rstrip("/") + key[len(base):], None)
        return list(matches)

    # Mutation

    def create_directory(self, path: str, permissions: int = 0o777) -> None:
        with os_errors('Directory "{}" cannot be created {}', path):
            key = self._key(path)
            if self.store.exists(key):
                raise FileExistsError(_errno.EEXIST, "File exists", path)
            missing = []
            current = key
            while current not in self.store.dirs:
                if current in self.store.files:
                    raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", current)
                missing.append(current)
                current = posixpath.dirname(current)
            self.store.require_parent(missing[-1])
            now = time.time()
            for directory in reversed(missing):
                self.store.dirs.add(directory)
                self.store.modes[directory] = permissions & 0o7777
                self.store.mtimes[directory] = now

    def delete_file(self, path: str) -> None:
        with os_errors('The file "{}" cannot be deleted {}', path):
            key = self._entry(path)
            if key in self.store.dirs:
                raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
            self.store.require_parent(key)
            self.store.forget(key)

    def delete_directory(self, path: str) -> None:
        with os_errors('The directory "{}" cannot be deleted {}', path):
            key = self._directory(path)
        for name in self.store.children(key):
            child = child_path(path, name)
            if child_path(key, name) in self.store.dirs:
                self.delete_directory(child)
            else:
                self.delete_file(child)
        with os_errors('The directory "{}" cannot be deleted {}', path):
            if key == "/":
                raise OSError(_errno.EBUSY, "Device or resource busy", path)
            self.store.require_parent(key)
            self.store.forget(key)

    def change_permissions(self, path: str, permissions: int) -> None:
        with os_errors('Cannot change permissions for path "{}" {}', path):
            self.store.modes[self._entry(path)] = permissions & 0o7777

    def touch(self, path: str, modification_time: float | None = None) -> None:
        with os_errors('The file or directory "{}" cannot be touched {}', path):
            key = self._key(path)
            if not self.store.exists(key):
                self.store.store(key, b"")
            self.store.mtimes[key] = modification_time or time.time()

    def _native_rename(self, old_path: str, new_path: str) -> None:
        src = self._entry(old_path)
        dst = self._key(new_path)
        if src == dst:
            return
        if dst.startswith(src + "/"):
            raise OSError(_errno.EINVAL, "Invalid argument", new_path)
        if dst in self.store.dirs:
            raise IsADirectoryError(_errno.EISDIR, "Is a directory", new_path)
        if src in self.store.dirs and dst in self.store.files:
            raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", new_path)
        self.store.require_parent(dst)
        store = self.store
        moved = [src] + [p for p in (store.files.keys() | store.dirs) if p.startswith(src + "/")]
        for old in moved:
            new = dst + old[len(src):]
            if old in store.files:
                store.files[new] = store.files.pop(old)
            else:
                store.dirs.discard(old)
                store.dirs.add(new)
            store.modes[new] = store.modes.pop(old, 0o644)
            store.mtimes[new] = store.mtimes.pop(old, time.time())

    def _native_copy(self, source: str, destination: str) -> None:
        key = self._entry(source)
        if key in self.store.dirs:
            raise IsADirectoryError(_errno.EISDIR, "Is a directory", source)
        self.store.store(self._key(destination), self.store.files[key])

    def _native_symlink(self, source: str, destination: str) -> None:
        raise OSError(_errno.EPERM, "MemoryDriver does not support symlinks")

    # Streams

    def file_open(self, path: str, mode: str) -> MemoryFile:
        with os_errors('File "{}" cannot be opened {}', path):
            key = self._key(path)
            mode = mode.replace("t", "")
            if key in self.store.dirs:
                raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
            if mode[:1] not in ("r", "w", "a", "x", "c"):
                raise ValueError(f"invalid mode: '{mode}'")
            if mode.startswith("r") and key not in self.store.files:
                raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
            if mode.startswith("x") and key in self.store.files:
                raise FileExistsError(_errno.EEXIST, "File exists", path)
            if key in self.store.files:
                granted = self.store.modes.get(key, 0o644)
                if mode.startswith("r") and not granted & stat_mod.S_IRUSR:
                    raise PermissionError(_errno.EACCES, "Permission denied", path)
                if any(m in mode for m in "wacx+") and not granted & stat_mod.S_IWUSR:
                    raise PermissionError(_errno.EACCES, "Permission denied", path)
            return MemoryFile(self.store, key, mode)

    def _holders(self, handle: Any) -> dict[int, int]:
        if not isinstance(handle, MemoryFile) or handle._store is not self.store:
            raise ValueError("handle was not opened by this driver")
        if handle.closed:
            raise ValueError(f"I/O operation on closed file: {handle.name}")
        return self.store.locks.setdefault(handle.name, {})

    def file_lock(self, handle: Any, mode: int = LOCK_EX) -> None:
        with os_errors("Error occurred during execution of fileLock {}"):
            holders = self._holders(handle)
            wanted = mode & ~LOCK_NB
            if wanted not in (LOCK_SH, LOCK_EX):
                raise OSError(_errno.EINVAL, "Invalid argument")
            others = [held for owner, held in holders.items() if owner != id(handle)]
            if LOCK_EX in others or (wanted == LOCK_EX and others):
                raise BlockingIOError(_errno.EWOULDBLOCK, "Resource temporarily unavailable")
            holders[id(handle)] = wanted

    def file_unlock(self, handle: Any) -> None:
        with os_errors("Error occurred during execution of fileUnlock {}"):
            self._holders(handle).pop(id(handle), None)

    def file_get_contents(
        self,
        path: str,
        flag: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> str | bytes:
        """Read a whole file; ``FILE_TEXT`` decodes using ``context['encoding']``."""
        with os_errors('Cannot read contents from file "{}" {}', path):
            key = self._entry(path)
            if key in self.store.dirs:
                raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
            if not self.store.modes.get(key, 0o644) & stat_mod.S_IRUSR:
                raise PermissionError(_errno.EACCES, "Permission denied", path)
            content = self.store.files[key]
            if flag and flag & FILE_TEXT:
                options = dict(context or {})
                return content.decode(
                    options.get("encoding", "utf-8"), options.get("errors", "strict")
                )
            return content

    def file_put_contents(self, path: str, content: Content, mode: int | None = None) -> int:
        data = to_bytes(content)
        flags = mode or 0
        with os_errors(WRITE_FAILED, path):
            key = self._key(path)
            if flags & LOCK_EX and self.store.locks.get(key):
                raise BlockingIOError(_errno.EWOULDBLOCK, "Resource temporarily unavailable")
            if key in self.store.files and not self.store.modes[key] & stat_mod.S_IWUSR:
                raise PermissionError(_errno.EACCES, "Permission denied", path)
            existing = self.store.files.get(key, b"") if flags & FILE_APPEND else b""
            self.store.store(key, existing + data)
        return len(data)


def _glob_match(names: list[str], parts: list[str]) -> bool:
    if len(names) != len(parts):
        return False
    for name, part in zip(names, parts):
        if name.startswith(".") and not part.startswith("."):
            return False
        if not fnmatch.fnmatchcase(name, part):
            return False
    return True
