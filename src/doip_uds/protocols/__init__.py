"""
DoIP UDS Protocols Layer

Provides the DoIP frame codec, the DoIP request/response client and the
UDS (Unified Diagnostic Services) request builder and response interpreter.
"""

from doip_uds.protocols.doip_client import DoIPClient, TraceEntry
from doip_uds.protocols.doip_message import (
    DiagnosticMessage,
    Frame,
    FramingError,
    PayloadType,
    RoutingActivationResponse,
    decode_frame,
    encode_frame,
)
from doip_uds.protocols.uds_client import (
    UDSClient,
    UDSError,
    UDSMessage,
    UDSServiceID,
    response_from_frame,
)

__all__ = [
    "DoIPClient",
    "TraceEntry",
    "DiagnosticMessage",
    "Frame",
    "FramingError",
    "PayloadType",
    "RoutingActivationResponse",
    "decode_frame",
    "encode_frame",
    "UDSClient",
    "UDSError",
    "UDSMessage",
    "UDSServiceID",
    "response_from_frame",
]
