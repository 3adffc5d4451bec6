"""
Pytest configuration and fixtures for DoIP UDS tests.
"""

import logging
import socket
import struct
import threading
from pathlib import Path
from typing import Callable, Generator

import pytest

from doip_uds.core.config import AppConfig
from doip_uds.protocols.doip_client import DoIPClient
from doip_uds.protocols.doip_message import (
    HEADER_SIZE,
    DiagnosticMessage,
    Frame,
    PayloadType,
)
from doip_uds.protocols.uds_client import UDSClient
from doip_uds.transport.mock_transport import MockTransport

TESTER_ADDRESS = 0x0E80
ECU_ADDRESS = 0x0EE0
ENTITY_ADDRESS = 0x1000
TEST_VIN = b"WBAWB71000P123456"


def gateway_response(request: Frame) -> Frame | None:
    """
    Simulated DoIP gateway.

    Answers each request type with a deterministic response. UDS
    responses use the status-byte convention: data[0] == 0x00 is positive.
    """
    if request.payload_type == PayloadType.VEHICLE_IDENTIFICATION_REQUEST:
        payload = TEST_VIN + struct.pack("!H", ENTITY_ADDRESS) + bytes(14)
        return Frame.create(PayloadType.VEHICLE_ANNOUNCEMENT_MESSAGE, payload)

    if request.payload_type == PayloadType.ROUTING_ACTIVATION_REQUEST:
        tester = struct.unpack_from("!H", request.payload)[0]
        payload = struct.pack("!HHB", tester, ENTITY_ADDRESS, 0x10) + bytes(4)
        return Frame.create(PayloadType.ROUTING_ACTIVATION_RESPONSE, payload)

    if request.payload_type == PayloadType.ENTITY_STATUS_REQUEST:
        return Frame.create(PayloadType.ENTITY_STATUS_RESPONSE, bytes([0x00, 0x10, 0x01]))

    if request.payload_type == PayloadType.DIAGNOSTIC_MESSAGE:
        message = DiagnosticMessage.from_payload(request.payload)
        service_id = message.user_data[0]
        if service_id == 0x22:
            data = bytes([0x00]) + message.user_data[1:3] + TEST_VIN
        elif service_id == 0x31:
            data = bytes([0x7F, 0x22])
        else:
            data = bytes([0x00])
        reply = DiagnosticMessage(
            message.target_address, message.source_address, bytes([service_id]) + data
        )
        return reply.to_frame()

    return None


def gateway_responder(data: bytes) -> bytes | None:
    """MockTransport responder wrapping gateway_response()."""
    response = gateway_response(Frame.decode(data))
    return response.encode() if response else None


def recv_exact(conn: socket.socket, size: int) -> bytes:
    """Server-side helper: read exactly size bytes or return what arrived."""
    buffer = b""
    while len(buffer) < size:
        chunk = conn.recv(size - len(buffer))
        if not chunk:
            break
        buffer += chunk
    return buffer


def recv_frame(conn: socket.socket) -> Frame | None:
    """Server-side helper: read one DoIP frame, None on EOF."""
    header = recv_exact(conn, HEADER_SIZE)
    if len(header) < HEADER_SIZE:
        return None
    length = struct.unpack_from("!L", header, 4)[0]
    return Frame.decode(header + recv_exact(conn, length))


ServerHandler = Callable[[socket.socket, threading.Event], None]


@pytest.fixture
def tcp_server() -> Generator[Callable[[ServerHandler], int], None, None]:
    """
    Start a one-connection loopback TCP server running a handler.

    Yields a function taking handler(conn, stop_event) and returning the
    listening port.
    """
    servers: list[tuple[socket.socket, threading.Thread, threading.Event]] = []

    def start(handler: ServerHandler) -> int:
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        stop = threading.Event()

        def serve() -> None:
            try:
                conn, _ = listener.accept()
            except OSError:
                return
            with conn:
                try:
                    handler(conn, stop)
                except OSError:
                    pass

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        servers.append((listener, thread, stop))
        return listener.getsockname()[1]

    yield start

    for listener, thread, stop in servers:
        stop.set()
        listener.close()
        thread.join(timeout=2)


def serve_gateway(conn: socket.socket, stop: threading.Event) -> None:
    """Server handler answering every frame with gateway_response()."""
    while not stop.is_set():
        request = recv_frame(conn)
        if request is None:
            return
        response = gateway_response(request)
        if response is not None:
            conn.sendall(response.encode())


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Detach package log handlers after each test."""
    yield
    root = logging.getLogger("doip_uds")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    logging.getLogger("doip_uds.raw").setLevel(logging.NOTSET)


@pytest.fixture
def app_config() -> AppConfig:
    """Create test application configuration."""
    return AppConfig()


@pytest.fixture
def mock_transport() -> MockTransport:
    """Create mock transport."""
    return MockTransport()


@pytest.fixture
def gateway_transport() -> MockTransport:
    """Create mock transport answering like a DoIP gateway."""
    return MockTransport(responder=gateway_responder)


@pytest.fixture
def doip_client(mock_transport: MockTransport) -> DoIPClient:
    """Create a connected DoIP client on a silent mock transport."""
    client = DoIPClient("192.168.1.10", transport=mock_transport)
    client.set_response_timeout(0.05)
    client.connect()
    return client


@pytest.fixture
def gateway_client(gateway_transport: MockTransport) -> DoIPClient:
    """Create a connected DoIP client talking to the simulated gateway."""
    client = DoIPClient("192.168.1.10", transport=gateway_transport)
    client.connect()
    return client


@pytest.fixture
def uds_client() -> UDSClient:
    """Create UDS client."""
    return UDSClient()


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create temporary directory for test files."""
    return tmp_path
