"""Handle-based stream operations shared by every driver.

A handle is whatever the driver's ``file_open`` returned: a regular
Python file object for LocalDriver, a MemoryFile for MemoryDriver.
Handles belong to the caller; nothing here closes one implicitly.
"""

from __future__ import annotations

import csv
import fcntl
import io
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from .base import LOCK_EX, LOCK_UN, SEEK_SET
from .exceptions import build_exception, os_errors

# Chunk used by file_read_line when the caller passes length 0.
DEFAULT_LINE_LENGTH = 8192


def is_binary(handle: Any) -> bool:
    """Whether ``handle`` reads and writes bytes rather than str."""
    if isinstance(handle, io.TextIOBase):
        return False
    if isinstance(handle, (io.RawIOBase, io.BufferedIOBase)):
        return True
    return "b" in getattr(handle, "mode", "")


def neutralize_formula(value: Any) -> str:
    """Coerce a CSV field to str and defuse spreadsheet formulas.

    Values starting with ``=`` get a leading space so spreadsheet
    applications show them as text instead of evaluating them.
    """
    text = "" if value is None else str(value)
    if text.startswith("="):
        return " " + text
    return text


def _csv_lines(handle: Any, length: int) -> Iterator[str]:
    """Yield lines from ``handle`` one at a time, decoding bytes."""
    while True:
        line = handle.readline(length) if length > 0 else handle.readline()
        if not line:
            return
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        yield line


def _escaped_lines(
    lines: Iterable[str], delimiter: str, enclosure: str, escape: str
) -> Iterator[str]:
    """Make ``escape`` keep an enclosure from closing a quoted field.

    Inside an enclosed field the escape character and the character
    after it are both kept as data; an escaped enclosure is rewritten as
    a doubled one so ``csv`` reads it literally. Outside enclosures the
    escape character is ordinary data. Quoting state carries across
    lines so multi-line fields work.
    """
    quoted = False
    for line in lines:
        out: list[str] = []
        at_start = not quoted
        i = 0
        while i < len(line):
            char = line[i]
            if quoted:
                if char == escape and i + 1 < len(line):
                    following = line[i + 1]
                    out.append(char + (following * 2 if following == enclosure else following))
                    i += 2
                    continue
                if char == enclosure:
                    if line[i + 1 : i + 2] == enclosure:
                        out.append(char * 2)
                        i += 2
                        continue
                    quoted = False
                    at_start = False
            else:
                if char == enclosure and at_start:
                    quoted = True
                at_start = char == delimiter
            out.append(char)
            i += 1
        yield "".join(out)


def csv_line(
    fields: Iterable[str], delimiter: str, enclosure: str, escape: str = "\\"
) -> str:
    """Format one CSV record terminated by ``\\n``.

    Fields containing the delimiter, the enclosure, the escape
    character, whitespace or line breaks are enclosed. Enclosures are
    doubled unless they follow the escape character.
    """
    special = {delimiter, enclosure, escape, " ", "\t", "\r", "\n"}
    formatted = []
    for field in fields:
        if not special.intersection(field):
            formatted.append(field)
            continue
        chars: list[str] = []
        escaped = False
        for char in field:
            if escaped:
                escaped = False
            elif char == escape:
                escaped = True
            elif char == enclosure:
                chars.append(enclosure)
            chars.append(char)
        formatted.append(enclosure + "".join(chars) + enclosure)
    return delimiter.join(formatted) + "\n"


class StreamOperations:
    """Mixin implementing the stream half of the Driver protocol.

    Subclasses provide ``file_open``; everything else works on any
    file-like handle.
    """

    def file_open(self, path: str, mode: str) -> Any:
        raise NotImplementedError

    def file_read(self, handle: Any, length: int) -> str | bytes:
        """Read up to ``length`` units from the current position."""
        with os_errors("File cannot be read {}"):
            return handle.read(length)

    def file_read_line(
        self, handle: Any, length: int, ending: str | bytes | None = None
    ) -> str | bytes:
        """Read up to ``length`` units, stopping at ``ending``.

        The delimiter is consumed but not returned. Without a delimiter
        this reads exactly ``length`` units (fewer at end of data).

        Raises:
            FileSystemException: If the handle is already at end of data
                or the read fails.
        """
        limit = length or DEFAULT_LINE_LENGTH
        with os_errors("File cannot be read {}"):
            if not ending:
                result = handle.read(limit)
                found = False
            else:
                result, found = self._read_until(handle, limit, ending)
        if not result and not found:
            raise build_exception(
                "File cannot be read {}", error=EOFError("end of data reached")
            )
        return result

    @staticmethod
    def _read_until(
        handle: Any, limit: int, ending: str | bytes
    ) -> tuple[str | bytes, bool]:
        buffer: Any = None
        while buffer is None or len(buffer) < limit:
            char = handle.read(1)
            if not char:
                break
            if buffer is None:
                buffer = char[:0]
                if isinstance(char, bytes) and isinstance(ending, str):
                    ending = ending.encode("utf-8")
                elif isinstance(char, str) and isinstance(ending, bytes):
                    ending = ending.decode("utf-8")
            buffer += char
            if buffer.endswith(ending):
                return buffer[: -len(ending)], True
        return (buffer if buffer is not None else ""), False

    def file_get_csv(
        self,
        handle: Any,
        length: int = 0,
        delimiter: str = ",",
        enclosure: str = '"',
        escape: str = "\\",
    ) -> list[str] | None:
        """Read one CSV record from the current position.

        Args:
            handle: Open readable handle.
            length: Maximum line length; 0 means unlimited.
            delimiter: Field separator.
            enclosure: Quote character.
            escape: Escape character; empty disables escaping.

        Returns:
            The record's fields, an empty list for a blank line, or None
            once there is no more data.

        Raises:
            FileSystemException: If the record is malformed or the read
                fails.
        """
        lines = _csv_lines(handle, length)
        if escape and escape != enclosure:
            lines = _escaped_lines(lines, delimiter, enclosure, escape)
        try:
            reader = csv.reader(
                lines,
                delimiter=delimiter,
                quotechar=enclosure,
                doublequote=True,
                strict=True,
            )
            with os_errors("Wrong CSV handle {}"):
                return next(reader, None)
        except (csv.Error, TypeError, UnicodeDecodeError) as e:
            raise build_exception("Wrong CSV handle {}", error=e) from e

    def file_tell(self, handle: Any) -> int:
        with os_errors("Error occurred during execution {}"):
            return handle.tell()

    def file_seek(self, handle: Any, offset: int, whence: int = SEEK_SET) -> int:
        """Move the handle's position and return the new absolute offset."""
        with os_errors("Error occurred during execution of fileSeek {}"):
            return handle.seek(offset, whence)

    def end_of_file(self, handle: Any) -> bool:
        """Whether the handle has no more data to read.

        Never raises: a closed or unreadable handle counts as exhausted.
        """
        try:
            if handle.closed:
                return True
            position = handle.tell()
            if not handle.read(1):
                return True
            handle.seek(position)
            return False
        except (OSError, ValueError):
            return True

    def file_write(self, handle: Any, data: str | bytes) -> int:
        """Write ``data`` and return the number of units written."""
        with os_errors("Error occurred during execution of fileWrite {}"):
            written = handle.write(data)
        return len(data) if written is None else written

    def file_put_csv(
        self,
        handle: Any,
        fields: Iterable[Any],
        delimiter: str = ",",
        enclosure: str = '"',
    ) -> int:
        """Write one CSV record and return the number of units written.

        Every field is coerced to str and values starting with ``=`` are
        prefixed with a space before writing. Fields holding whitespace
        are enclosed, so the defused value keeps its leading space.
        """
        row = [neutralize_formula(value) for value in fields]
        if len(delimiter) != 1 or len(enclosure) != 1:
            raise build_exception(
                "Error occurred during execution of filePutCsv {}",
                error=ValueError("delimiter and enclosure must be single characters"),
            )

        data: str | bytes = csv_line(row, delimiter, enclosure)
        if is_binary(handle):
            data = data.encode("utf-8")
        with os_errors("Error occurred during execution of filePutCsv {}"):
            written = handle.write(data)
        return len(data) if written is None else written

    def file_flush(self, handle: Any) -> None:
        with os_errors("Error occurred during execution of fileFlush {}"):
            handle.flush()

    def file_lock(self, handle: Any, mode: int = LOCK_EX) -> None:
        """Take an advisory lock on the handle; blocks unless LOCK_NB is set."""
        with os_errors("Error occurred during execution of fileLock {}"):
            fcntl.flock(handle.fileno(), mode)

    def file_unlock(self, handle: Any) -> None:
        with os_errors("Error occurred during execution of fileUnlock {}"):
            fcntl.flock(handle.fileno(), LOCK_UN)

    def file_close(self, handle: Any) -> None:
        """Close the handle.

        Raises:
            FileSystemException: If the handle is already closed or the
                final flush fails.
        """
        if getattr(handle, "closed", False):
            raise build_exception(
                "Error occurred during execution of fileClose {}",
                error=ValueError("I/O operation on closed file"),
            )
        with os_errors("Error occurred during execution of fileClose {}"):
            handle.close()

    @contextmanager
    def opened(self, path: str, mode: str = "r") -> Iterator[Any]:
        """Open ``path`` and close the handle on every exit path.

        Example::

            with driver.opened("/tmp/out.csv", "w") as handle:
                driver.file_put_csv(handle, ["id", "name"])
        """
        handle = self.file_open(path, mode)
        try:
            yield handle
        finally:
            if not handle.closed:
                self.file_close(handle)

    @contextmanager
    def locked(self, handle: Any, mode: int = LOCK_EX) -> Iterator[Any]:
        """Hold an advisory lock on ``handle`` for the duration of the block."""
        self.file_lock(handle, mode)
        try:
            yield handle
        finally:
            self.file_unlock(handle)
