"""
DoIP Client

Turns a blocking stream transport into a request/response channel for
DoIP frames, with a bounded response wait, a fixed-backoff retry policy
and protocol tracing. Exactly one request may be outstanding; callers
sharing a client between threads must serialize access themselves.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from doip_uds.core.app_logging import get_logger, log_audit_event, log_diagnostic_action
from doip_uds.core.config import (
    DEFAULT_DOIP_PORT,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    ConnectionConfig,
)
from doip_uds.protocols.doip_message import (
    HEADER_SIZE,
    ROUTING_ACTIVATION_DEFAULT,
    DiagnosticMessage,
    Frame,
    PayloadType,
    RoutingActivationResponse,
    decode_frame,
    parse_payload_length,
    routing_activation_payload,
)
from doip_uds.protocols.uds_client import UDSMessage, response_from_frame
from doip_uds.transport.base import BaseTransport, DoIPConnectionError
from doip_uds.transport.tcp_transport import TCPTransport

logger = get_logger(__name__)

RETRY_BACKOFF = 0.1  # seconds, constant between attempts


@dataclass
class TraceEntry:
    """Protocol trace entry."""

    timestamp: datetime
    direction: str  # "TX" or "RX"
    payload_type: PayloadType
    data: bytes
    description: str


class DoIPClient:
    """
    DoIP client for a single gateway connection.

    Wraps a stream transport and provides one builder per DoIP request
    type, all funnelled through send_and_receive().
    """

    def __init__(
        self,
        server_address: str,
        port: int = DEFAULT_DOIP_PORT,
        transport: BaseTransport | None = None,
        strict_header: bool = False,
    ) -> None:
        """
        Initialize DoIP client.

        Args:
            server_address: IPv4 address of the DoIP entity
            port: TCP port of the DoIP entity
            transport: Stream transport (default: new TCPTransport)
            strict_header: Reject responses whose inverse protocol version
                does not match the version
        """
        self._server_address = server_address
        self._port = port
        self._transport = transport or TCPTransport()
        self._strict_header = strict_header
        self._response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
        self._retry_count: int = DEFAULT_RETRY_COUNT
        self._trace: list[TraceEntry] = []
        self._trace_callbacks: list[Callable[[TraceEntry], None]] = []

    @classmethod
    def from_config(
        cls, config: ConnectionConfig, transport: BaseTransport | None = None
    ) -> "DoIPClient":
        """Create a client from connection configuration."""
        client = cls(
            config.server_address,
            config.port,
            transport=transport,
            strict_header=config.strict_header,
        )
        client.set_response_timeout(config.response_timeout)
        client.set_retry_count(config.retry_count)
        return client

    def __enter__(self) -> "DoIPClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # Configuration

    @property
    def response_timeout(self) -> float:
        return self._response_timeout

    @property
    def retry_count(self) -> int:
        return self._retry_count

    def set_response_timeout(self, timeout: float) -> None:
        """Set response timeout in seconds (used from the next exchange)."""
        self._response_timeout = timeout

    def set_retry_count(self, count: int) -> None:
        """Set number of attempts per exchange. Values <= 0 make no attempt."""
        self._retry_count = count

    # Connection management

    def connect(self) -> None:
        """
        Open the connection. Does nothing if already connected.

        Raises:
            DoIPConnectionError: On invalid address or connect failure
        """
        if self.is_connected():
            return

        self._transport.open(self._server_address, self._port)
        log_audit_event(
            "connect",
            f"Connected to DoIP entity {self._server_address}:{self._port}",
            {"transport": self._transport.get_info()},
        )

    def disconnect(self) -> None:
        """Close the connection if open."""
        if not self.is_connected():
            return

        self._transport.close()
        log_audit_event(
            "disconnect",
            f"Disconnected from DoIP entity {self._server_address}:{self._port}",
        )

    def is_connected(self) -> bool:
        """Check if the connection is open."""
        return self._transport.is_open()

    def _ensure_connected(self) -> None:
        if not self.is_connected():
            raise DoIPConnectionError(
                message="Not connected to DoIP server",
                code="NOT_CONNECTED",
            )

    # Trace

    @property
    def trace(self) -> list[TraceEntry]:
        """Get protocol trace."""
        return self._trace.copy()

    def add_trace_callback(self, callback: Callable[[TraceEntry], None]) -> None:
        """Add callback for trace entries."""
        self._trace_callbacks.append(callback)

    def clear_trace(self) -> None:
        """Clear protocol trace."""
        self._trace.clear()

    def _add_trace(self, direction: str, frame: Frame, data: bytes) -> None:
        entry = TraceEntry(
            timestamp=datetime.now(),
            direction=direction,
            payload_type=frame.payload_type,
            data=data,
            description=str(frame),
        )
        self._trace.append(entry)

        for callback in self._trace_callbacks:
            try:
                callback(entry)
            except Exception as e:
                logger.warning(f"Trace callback error: {e}")

    # Message exchange

    def send_message(self, message: Frame) -> None:
        """
        Encode and write a frame.

        Raises:
            DoIPConnectionError: If not connected or the write fails
        """
        self._ensure_connected()
        data = message.encode()
        self._transport.send(data)
        self._add_trace("TX", message, data)

    def receive_message(self) -> Frame:
        """
        Read one frame: the 8-byte header, then exactly the declared payload.

        Raises:
            DoIPConnectionError: If not connected or the stream ends early
            FramingError: If the received bytes are not a valid frame
        """
        self._ensure_connected()

        try:
            header = self._transport.receive_exact(HEADER_SIZE)
        except DoIPConnectionError as e:
            raise DoIPConnectionError(
                message=f"Failed to receive message header: {e.message}",
                code="HEADER_INCOMPLETE",
            ) from e

        payload_length = parse_payload_length(header)
        payload = b""
        if payload_length:
            try:
                payload = self._transport.receive_exact(payload_length)
            except DoIPConnectionError as e:
                raise DoIPConnectionError(
                    message=f"Failed to receive message payload: {e.message}",
                    code="PAYLOAD_INCOMPLETE",
                ) from e

        data = header + payload
        frame = decode_frame(data, strict=self._strict_header)
        self._add_trace("RX", frame, data)
        return frame

    def send_and_receive(self, message: Frame) -> Frame:
        """
        Send a frame and wait for the response, retrying on connection errors.

        Each attempt sends the frame and waits up to the response timeout
        for data. Connection errors (including the timeout) are retried
        after a constant backoff; the error of the final attempt is raised.
        Any other exception propagates immediately.

        Raises:
            DoIPConnectionError: When all attempts failed
        """
        self._ensure_connected()

        for attempt in range(self._retry_count):
            try:
                self.send_message(message)

                if not self._transport.wait_readable(self._response_timeout):
                    raise DoIPConnectionError(
                        message="Response timeout",
                        code="TIMEOUT",
                    )

                return self.receive_message()

            except DoIPConnectionError as e:
                if attempt == self._retry_count - 1:
                    logger.error(
                        f"{message.payload_type.description} failed after "
                        f"{self._retry_count} attempt(s): {e}"
                    )
                    raise
                logger.warning(
                    f"Attempt {attempt + 1}/{self._retry_count} failed: {e}, retrying"
                )
                time.sleep(RETRY_BACKOFF)

        raise DoIPConnectionError(
            message="Max retry attempts reached",
            code="RETRIES_EXHAUSTED",
        )

    # High-level DoIP operations

    def send_vehicle_identification_request(self) -> Frame:
        """Send a vehicle identification request."""
        return self.send_and_receive(
            Frame.create(PayloadType.VEHICLE_IDENTIFICATION_REQUEST)
        )

    def send_routing_activation_request(
        self,
        source_address: int,
        activation_type: int = ROUTING_ACTIVATION_DEFAULT,
    ) -> Frame:
        """
        Send a routing activation request.

        Args:
            source_address: Tester logical address
            activation_type: Activation type (0x00 = default)
        """
        request = Frame.create(
            PayloadType.ROUTING_ACTIVATION_REQUEST,
            routing_activation_payload(source_address, activation_type),
        )
        return self.send_and_receive(request)

    def send_entity_status_request(self) -> Frame:
        """Send a DoIP entity status request."""
        return self.send_and_receive(Frame.create(PayloadType.ENTITY_STATUS_REQUEST))

    def send_diagnostic_message(
        self, source_address: int, target_address: int, data: bytes
    ) -> Frame:
        """Send a diagnostic message carrying data from source to target."""
        message = DiagnosticMessage(source_address, target_address, bytes(data))
        return self.send_and_receive(message.to_frame())

    def send_uds_request(
        self,
        source_address: int,
        target_address: int,
        service_id: int,
        data: bytes = b"",
    ) -> Frame:
        """Send a UDS request (service identifier + data) as a diagnostic message."""
        return self.send_diagnostic_message(
            source_address, target_address, bytes([service_id]) + bytes(data)
        )

    def activate_routing(
        self,
        source_address: int,
        activation_type: int = ROUTING_ACTIVATION_DEFAULT,
    ) -> RoutingActivationResponse | None:
        """
        Activate routing and parse the response.

        Returns:
            Parsed response, or None if the entity answered with another
            payload type
        """
        response = self.send_routing_activation_request(source_address, activation_type)

        if response.payload_type != PayloadType.ROUTING_ACTIVATION_RESPONSE:
            log_diagnostic_action(
                "routing_activation",
                target=f"0x{source_address:04X}",
                success=False,
                error=f"Unexpected response: {response.payload_type.description}",
            )
            return None

        result = RoutingActivationResponse.from_payload(response.payload)
        log_diagnostic_action(
            "routing_activation",
            target=f"0x{result.entity_address:04X}",
            success=result.successful,
            error=None if result.successful else f"code 0x{result.response_code:02X}",
            details={"tester_address": f"0x{result.tester_address:04X}"},
        )
        return result

    def request_uds(
        self, source_address: int, target_address: int, request: UDSMessage
    ) -> UDSMessage:
        """
        Send a UDS request and return the UDS response it produced.

        Raises:
            UDSError: If the response is not a diagnostic message with data
        """
        response = self.send_uds_request(
            source_address, target_address, request.service_id, request.data
        )
        return response_from_frame(response)
