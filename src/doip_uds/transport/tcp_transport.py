"""
TCP Transport Implementation

Blocking TCP stream transport for DoIP. Reads are exact-length and loop
over partial receives; the response timeout is implemented as a readiness
wait with select() so a read is only started once data has arrived.
"""

import ipaddress
import select
import socket
from typing import Any

from doip_uds.core.app_logging import get_logger, get_raw_logger
from doip_uds.transport.base import BaseTransport, DoIPConnectionError

logger = get_logger(__name__)
raw_logger = get_raw_logger()


class TCPTransport(BaseTransport):
    """TCP client transport owning a single IPv4 stream socket."""

    def __init__(self, connect_timeout: float | None = None) -> None:
        self._sock: socket.socket | None = None
        self._address: str | None = None
        self._port: int | None = None
        self._connect_timeout = connect_timeout

    def open(self, address: str, port: int) -> None:
        """Connect to address:port."""
        if self._sock is not None:
            return

        try:
            ipaddress.IPv4Address(address)
        except ValueError:
            raise DoIPConnectionError(
                message=f"Invalid address/ Address not supported: {address!r}",
                code="INVALID_ADDRESS",
            ) from None

        if not 0 <= port <= 0xFFFF:
            raise DoIPConnectionError(
                message=f"Invalid port: {port}",
                code="INVALID_ADDRESS",
            )

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise DoIPConnectionError(
                message=f"Failed to create socket: {e}",
                code="SOCKET_CREATE_FAILED",
            ) from e

        try:
            sock.settimeout(self._connect_timeout)
            sock.connect((address, port))
            sock.settimeout(None)
        except OSError as e:
            sock.close()
            logger.error(f"Connection to {address}:{port} failed: {e}")
            raise DoIPConnectionError(
                message=f"Connection Failed: {address}:{port} ({e})",
                code="CONNECT_FAILED",
            ) from e

        self._sock = sock
        self._address = address
        self._port = port
        logger.info(f"TCP connection opened: {address}:{port}")

    def close(self) -> None:
        """Close the socket if open."""
        if self._sock is None:
            return

        try:
            self._sock.close()
            logger.info(f"TCP connection closed: {self._address}:{self._port}")
        except OSError as e:
            logger.warning(f"Error closing socket: {e}")
        finally:
            self._sock = None

    def is_open(self) -> bool:
        """Check if the socket is open."""
        return self._sock is not None

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise DoIPConnectionError(
                message="Socket is not open",
                code="NOT_CONNECTED",
            )
        return self._sock

    def send(self, data: bytes) -> None:
        """Write data in full."""
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except OSError as e:
            raise DoIPConnectionError(
                message=f"Failed to send message: {e}",
                code="SEND_FAILED",
            ) from e
        raw_logger.debug(f"TX ({len(data)}): {data.hex()}")

    def receive_exact(self, size: int) -> bytes:
        """Read exactly size bytes, looping over partial reads."""
        sock = self._require_socket()
        buffer = bytearray()

        while len(buffer) < size:
            try:
                chunk = sock.recv(size - len(buffer))
            except OSError as e:
                raise DoIPConnectionError(
                    message=f"Receive failed after {len(buffer)}/{size} bytes: {e}",
                    code="RECEIVE_FAILED",
                ) from e
            if not chunk:
                raise DoIPConnectionError(
                    message=f"Connection closed after {len(buffer)}/{size} bytes",
                    code="SHORT_READ",
                )
            buffer.extend(chunk)

        raw_logger.debug(f"RX ({size}): {bytes(buffer).hex()}")
        return bytes(buffer)

    def wait_readable(self, timeout: float) -> bool:
        """Wait up to timeout seconds for the socket to become readable."""
        sock = self._require_socket()
        try:
            readable, _, _ = select.select([sock], [], [], max(timeout, 0.0))
        except (OSError, ValueError) as e:
            raise DoIPConnectionError(
                message=f"Poll error: {e}",
                code="POLL_ERROR",
            ) from e
        return bool(readable)

    def get_info(self) -> dict[str, Any]:
        """Get transport information."""
        return {
            "type": "tcp",
            "address": self._address,
            "port": self._port,
            "is_open": self.is_open(),
        }
