"""Configuration for filesystem drivers.

Provides configuration dataclasses, the connect_driver factory that
validates them, and create_driver which builds the configured driver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .driver import BaseDriver
from .local import SUPPORTED_SCHEMES, LocalDriver
from .memory import MemoryDriver, MemoryStore


@dataclass
class LocalDriverConfig:
    """Configuration for the local disk driver.

    Attributes:
        type: Always "local".
        scheme: "" for plain host paths or "file" for ``file://`` URLs.
    """

    type: Literal["local"] = "local"
    scheme: str = ""


@dataclass
class MemoryDriverConfig:
    """Configuration for the in-memory driver.

    Attributes:
        type: Always "memory".
        scheme: Prefix accepted on incoming paths (default "memory").
    """

    type: Literal["memory"] = "memory"
    scheme: str = "memory"


# Type alias for all driver configs
DriverConfig = LocalDriverConfig | MemoryDriverConfig


def connect_driver(
    type: Literal["local", "memory"] = "local",
    **kwargs,
) -> DriverConfig:
    """Configure a filesystem driver.

    Args:
        type: Driver type.
            - "local": The host operating system's filesystem.
            - "memory": An in-process store, handy for tests and as a
                        second backend for cross-backend copies.
        **kwargs: Additional configuration for the driver type.
            - scheme (str): Optional. Path scheme for the driver.

    Returns:
        DriverConfig for create_driver().

    Examples:
        >>> connect_driver(type="local")
        LocalDriverConfig(type='local', scheme='')

        >>> connect_driver(type="memory", scheme="mem")
        MemoryDriverConfig(type='memory', scheme='mem')
    """
    if type == "local":
        scheme = kwargs.pop("scheme", "")
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for local driver: {list(kwargs.keys())}"
            )
        if scheme not in SUPPORTED_SCHEMES:
            raise ValueError(f"Local driver does not support scheme {scheme!r}")
        return LocalDriverConfig(scheme=scheme)

    elif type == "memory":
        scheme = kwargs.pop("scheme", "memory")
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for memory driver: {list(kwargs.keys())}"
            )
        return MemoryDriverConfig(scheme=scheme)

    else:
        raise ValueError(
            f"Unsupported driver type: {type}. Use 'local' or 'memory'."
        )


def create_driver(
    config: DriverConfig, store: MemoryStore | None = None
) -> BaseDriver:
    """Build the driver described by ``config``.

    Args:
        config: Result of connect_driver().
        store: Store to share between memory drivers; a fresh one is
            created when omitted. Ignored for local drivers.
    """
    if isinstance(config, LocalDriverConfig):
        return LocalDriver(scheme=config.scheme)
    if isinstance(config, MemoryDriverConfig):
        return MemoryDriver(store=store, scheme=config.scheme)
    raise ValueError(f"Unsupported driver config: {config!r}")
