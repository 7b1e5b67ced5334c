"""Abstract base transport for switch management sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self

DEFAULT_TIMEOUT = 10


class BaseTransport(ABC):
    """A management session to one switch (SSH CLI, REST, ...)."""

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.timeout = timeout

    @abstractmethod
    def connect(self) -> None:
        """Open the session."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the session; safe to call when not connected."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the session is currently open."""

    def ensure_connected(self) -> None:
        """Connect lazily on first use."""
        if not self.is_connected():
            self.connect()

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.disconnect()
