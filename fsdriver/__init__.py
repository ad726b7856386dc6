"""fsdriver: OS filesystem access with uniform, typed failures."""

from .base import (
    FILE_APPEND,
    FILE_TEXT,
    LOCK_EX,
    LOCK_NB,
    LOCK_SH,
    LOCK_UN,
    SEEK_CUR,
    SEEK_END,
    SEEK_SET,
    BackendKind,
    Driver,
)
from .config import (
    DriverConfig,
    LocalDriverConfig,
    MemoryDriverConfig,
    connect_driver,
    create_driver,
)
from .exceptions import (
    FileSystemException,
    PathExistsException,
    PathNotFoundException,
    PermissionDeniedException,
)
from .local import LocalDriver
from .memory import MemoryDriver, MemoryFile, MemoryStore

__all__ = [
    "BackendKind",
    "connect_driver",
    "create_driver",
    "Driver",
    "DriverConfig",
    "FILE_APPEND",
    "FILE_TEXT",
    "FileSystemException",
    "LocalDriver",
    "LocalDriverConfig",
    "LOCK_EX",
    "LOCK_NB",
    "LOCK_SH",
    "LOCK_UN",
    "MemoryDriver",
    "MemoryDriverConfig",
    "MemoryFile",
    "MemoryStore",
    "PathExistsException",
    "PathNotFoundException",
    "PermissionDeniedException",
    "SEEK_CUR",
    "SEEK_END",
    "SEEK_SET",
]
