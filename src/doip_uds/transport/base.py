"""
Base Transport Interface

Defines the abstract byte-stream interface used by the DoIP client and
the connection error raised by every transport implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class DoIPConnectionError(Exception):
    """Connection-level error (socket, timeout, short read, retries)."""

    message: str
    code: str

    def __str__(self) -> str:
        return f"DoIPConnectionError[{self.code}]: {self.message}"


class BaseTransport(ABC):
    """
    Abstract base class for stream transport implementations.

    A transport owns exactly one connection. Every failure is reported
    as DoIPConnectionError so the client can apply its retry policy.
    """

    @abstractmethod
    def open(self, address: str, port: int) -> None:
        """
        Open the stream connection.

        Args:
            address: IPv4 address of the DoIP entity
            port: TCP port (13400 for DoIP)

        Raises:
            DoIPConnectionError: If the connection cannot be established
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Never raises."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the transport is open."""
        pass

    @abstractmethod
    def send(self, data: bytes) -> None:
        """
        Write all of data to the stream.

        Raises:
            DoIPConnectionError: If the write does not succeed
        """
        pass

    @abstractmethod
    def receive_exact(self, size: int) -> bytes:
        """
        Read exactly size bytes.

        Raises:
            DoIPConnectionError: If the stream ends or fails before size
                bytes were read
        """
        pass

    @abstractmethod
    def wait_readable(self, timeout: float) -> bool:
        """
        Wait until data can be read.

        Args:
            timeout: Maximum wait in seconds

        Returns:
            True if readable, False if the timeout expired
        """
        pass

    def get_info(self) -> dict[str, Any]:
        """Get transport information (optional implementation)."""
        return {"type": self.__class__.__name__}
