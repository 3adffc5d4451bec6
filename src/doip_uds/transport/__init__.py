"""
DoIP UDS Transport Layer

Provides abstracted stream transport implementations for DoIP
communication: a TCP socket transport and a mock for simulation.
"""

from doip_uds.transport.base import BaseTransport, DoIPConnectionError
from doip_uds.transport.mock_transport import MockTransport
from doip_uds.transport.tcp_transport import TCPTransport

__all__ = [
    "BaseTransport",
    "DoIPConnectionError",
    "MockTransport",
    "TCPTransport",
]
