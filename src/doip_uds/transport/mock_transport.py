"""
Mock Transport Implementation

Provides a simulated stream transport for testing and demonstration.
Responses are either queued up front or produced by a responder
callable that sees every sent frame, so behaviour is deterministic.
"""

from collections import deque
from typing import Any, Callable

from doip_uds.core.app_logging import get_logger, get_raw_logger
from doip_uds.transport.base import BaseTransport, DoIPConnectionError

logger = get_logger(__name__)
raw_logger = get_raw_logger()

Responder = Callable[[bytes], bytes | None]


class MockTransport(BaseTransport):
    """
    Mock transport for simulation mode.

    Received bytes behave like a stream: queued responses are appended
    to one buffer and read back in arbitrary chunk sizes.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        self._is_open: bool = False
        self._endpoint: tuple[str, int] | None = None
        self._tx_buffer: deque[bytes] = deque()
        self._rx_stream: bytearray = bytearray()
        self._responder = responder
        self.fail_open: bool = False
        self.fail_send: bool = False
        self.open_count: int = 0

    def open(self, address: str, port: int) -> None:
        """Simulate opening a connection."""
        if self.fail_open:
            raise DoIPConnectionError(
                message=f"[MOCK] Connection Failed: {address}:{port}",
                code="CONNECT_FAILED",
            )
        logger.info(f"[MOCK] Opening connection: {address}:{port}")
        self._is_open = True
        self._endpoint = (address, port)
        self.open_count += 1

    def close(self) -> None:
        """Simulate closing the connection."""
        if self._is_open:
            logger.info("[MOCK] Closing connection")
        self._is_open = False
        self._endpoint = None
        self._rx_stream.clear()

    def is_open(self) -> bool:
        """Check if mock connection is open."""
        return self._is_open

    def send(self, data: bytes) -> None:
        """
        Simulate sending data.

        The data is recorded even when the send is made to fail, so tests
        can count attempts.
        """
        if not self._is_open:
            raise DoIPConnectionError(
                message="[MOCK] Socket is not open",
                code="NOT_CONNECTED",
            )

        raw_logger.debug(f"[MOCK] TX ({len(data)}): {data.hex()}")
        self._tx_buffer.append(bytes(data))

        if self.fail_send:
            raise DoIPConnectionError(
                message="[MOCK] Failed to send message",
                code="SEND_FAILED",
            )

        if self._responder:
            response = self._responder(bytes(data))
            if response:
                self._rx_stream.extend(response)

    def receive_exact(self, size: int) -> bytes:
        """Read exactly size bytes from the simulated stream."""
        if not self._is_open:
            raise DoIPConnectionError(
                message="[MOCK] Socket is not open",
                code="NOT_CONNECTED",
            )

        if len(self._rx_stream) < size:
            available = len(self._rx_stream)
            self._rx_stream.clear()
            raise DoIPConnectionError(
                message=f"[MOCK] Connection closed after {available}/{size} bytes",
                code="SHORT_READ",
            )

        data = bytes(self._rx_stream[:size])
        del self._rx_stream[:size]
        raw_logger.debug(f"[MOCK] RX ({len(data)}): {data.hex()}")
        return data

    def wait_readable(self, timeout: float) -> bool:
        """Readable as soon as any simulated bytes are pending."""
        return self._is_open and bool(self._rx_stream)

    def set_responder(self, responder: Responder | None) -> None:
        """Install a callable producing the response for each sent frame."""
        self._responder = responder

    def queue_response(self, response: bytes) -> None:
        """Queue response bytes for upcoming reads."""
        self._rx_stream.extend(response)

    def get_last_sent(self) -> bytes | None:
        """Get the last sent data (for testing)."""
        return self._tx_buffer[-1] if self._tx_buffer else None

    def get_sent_count(self) -> int:
        """Get count of sent messages."""
        return len(self._tx_buffer)

    def clear_buffers(self) -> None:
        """Clear all buffers."""
        self._tx_buffer.clear()
        self._rx_stream.clear()

    def get_info(self) -> dict[str, Any]:
        """Get transport information."""
        return {
            "type": "mock",
            "endpoint": self._endpoint,
            "is_open": self._is_open,
            "tx_count": len(self._tx_buffer),
            "rx_pending": len(self._rx_stream),
        }
