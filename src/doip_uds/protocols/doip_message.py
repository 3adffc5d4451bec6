"""
DoIP Message Codec

Encodes and decodes DoIP (ISO 13400-2) frames: an 8-byte generic header
followed by the payload. All multi-byte integers are big-endian.

    offset 0    protocol version
    offset 1    inverse protocol version
    offset 2-3  payload type (uint16)
    offset 4-7  payload length N (uint32)
    offset 8..  payload (N bytes)
"""

import struct
from dataclasses import dataclass
from enum import IntEnum

PROTOCOL_VERSION = 0x02
INVERSE_PROTOCOL_VERSION = 0xFD
HEADER_SIZE = 8
MAX_PAYLOAD_LENGTH = 0xFFFFFFFF

HEADER_FORMAT = "!BBHL"

ROUTING_ACTIVATION_DEFAULT = 0x00
ROUTING_ACTIVATION_SUCCESS = 0x10


@dataclass
class FramingError(Exception):
    """DoIP frame could not be encoded or decoded."""

    message: str
    code: str = "FRAMING"

    def __str__(self) -> str:
        return f"FramingError[{self.code}]: {self.message}"


class PayloadType(IntEnum):
    """DoIP payload types (ISO 13400-2)."""

    GENERIC_HEADER_NACK = 0x0000
    VEHICLE_IDENTIFICATION_REQUEST = 0x0001
    VEHICLE_IDENTIFICATION_REQUEST_WITH_EID = 0x0002
    VEHICLE_IDENTIFICATION_REQUEST_WITH_VIN = 0x0003
    VEHICLE_ANNOUNCEMENT_MESSAGE = 0x0004
    ROUTING_ACTIVATION_REQUEST = 0x0005
    ROUTING_ACTIVATION_RESPONSE = 0x0006
    ALIVE_CHECK_REQUEST = 0x0007
    ALIVE_CHECK_RESPONSE = 0x0008
    ENTITY_STATUS_REQUEST = 0x4001
    ENTITY_STATUS_RESPONSE = 0x4002
    DIAGNOSTIC_MESSAGE = 0x8001
    DIAGNOSTIC_MESSAGE_POSITIVE_ACK = 0x8002
    DIAGNOSTIC_MESSAGE_NEGATIVE_ACK = 0x8003

    @classmethod
    def _missing_(cls, value: object) -> "PayloadType | None":
        # Unknown codes become an UNRECOGNIZED pseudo-member that keeps the
        # raw value, so a decoded frame re-encodes byte for byte. It is not
        # registered on the class, so decoding leaves the enum unchanged.
        if not isinstance(value, int) or not 0 <= value <= 0xFFFF:
            return None
        member = int.__new__(cls, value)
        member._name_ = "UNRECOGNIZED"
        member._value_ = value
        return member

    @property
    def is_recognized(self) -> bool:
        """False for codes outside the enumeration."""
        return self._name_ in type(self)._member_map_

    @property
    def description(self) -> str:
        """Human-readable payload type name."""
        return _PAYLOAD_TYPE_NAMES.get(self._name_, "Unknown Payload Type")


_PAYLOAD_TYPE_NAMES = {
    "GENERIC_HEADER_NACK": "Generic DoIP Header NACK",
    "VEHICLE_IDENTIFICATION_REQUEST": "Vehicle Identification Request",
    "VEHICLE_IDENTIFICATION_REQUEST_WITH_EID": "Vehicle Identification Request with EID",
    "VEHICLE_IDENTIFICATION_REQUEST_WITH_VIN": "Vehicle Identification Request with VIN",
    "VEHICLE_ANNOUNCEMENT_MESSAGE": "Vehicle Announcement Message",
    "ROUTING_ACTIVATION_REQUEST": "Routing Activation Request",
    "ROUTING_ACTIVATION_RESPONSE": "Routing Activation Response",
    "ALIVE_CHECK_REQUEST": "Alive Check Request",
    "ALIVE_CHECK_RESPONSE": "Alive Check Response",
    "ENTITY_STATUS_REQUEST": "DoIP Entity Status Request",
    "ENTITY_STATUS_RESPONSE": "DoIP Entity Status Response",
    "DIAGNOSTIC_MESSAGE": "Diagnostic Message",
    "DIAGNOSTIC_MESSAGE_POSITIVE_ACK": "Diagnostic Message Positive Acknowledgement",
    "DIAGNOSTIC_MESSAGE_NEGATIVE_ACK": "Diagnostic Message Negative Acknowledgement",
}


@dataclass(frozen=True)
class Frame:
    """
    One DoIP message: generic header plus payload.

    The payload length is always derived from the payload, so a frame
    whose header disagrees with its payload cannot exist.
    """

    payload_type: PayloadType
    payload: bytes = b""
    protocol_version: int = PROTOCOL_VERSION
    inverse_protocol_version: int = INVERSE_PROTOCOL_VERSION

    def __post_init__(self) -> None:
        for name in ("protocol_version", "inverse_protocol_version"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFF:
                raise FramingError(f"{name} out of range: {value}", "FIELD_RANGE")

        try:
            payload_type = PayloadType(self.payload_type)
        except ValueError:
            raise FramingError(
                f"Payload type out of range: {self.payload_type!r}", "FIELD_RANGE"
            ) from None
        object.__setattr__(self, "payload_type", payload_type)

        payload = bytes(self.payload)
        if len(payload) > MAX_PAYLOAD_LENGTH:
            raise FramingError(
                f"Payload of {len(payload)} bytes exceeds 32-bit length field",
                "FIELD_RANGE",
            )
        object.__setattr__(self, "payload", payload)

    @classmethod
    def create(cls, payload_type: PayloadType | int, payload: bytes = b"") -> "Frame":
        """Create a frame with the default protocol version."""
        return cls(payload_type=payload_type, payload=payload)

    @property
    def payload_length(self) -> int:
        """Length field as written on the wire."""
        return len(self.payload)

    @property
    def header_is_valid(self) -> bool:
        """True when the inverse version is the complement of the version."""
        return self.inverse_protocol_version == (~self.protocol_version & 0xFF)

    def encode(self) -> bytes:
        """Serialize to header + payload bytes."""
        return encode_frame(self)

    @classmethod
    def decode(cls, data: bytes, strict: bool = False) -> "Frame":
        """Parse header + payload bytes."""
        return decode_frame(data, strict=strict)

    def __str__(self) -> str:
        return (
            f"{self.payload_type.description} "
            f"(0x{int(self.payload_type):04X}, {self.payload_length} bytes)"
        )


def encode_frame(frame: Frame) -> bytes:
    """Encode a frame into exactly HEADER_SIZE + len(payload) bytes."""
    header = struct.pack(
        HEADER_FORMAT,
        frame.protocol_version,
        frame.inverse_protocol_version,
        int(frame.payload_type),
        frame.payload_length,
    )
    return header + frame.payload


def parse_payload_length(header: bytes) -> int:
    """Read the big-endian payload length from bytes 4-7 of a header."""
    if len(header) < HEADER_SIZE:
        raise FramingError(
            f"Insufficient data for DoIP header: {len(header)} < {HEADER_SIZE}",
            "HEADER_INCOMPLETE",
        )
    return struct.unpack_from("!L", header, 4)[0]


def decode_frame(data: bytes, strict: bool = False) -> Frame:
    """
    Decode a DoIP frame.

    Args:
        data: Header followed by at least the declared payload length
        strict: Reject frames whose inverse version is not the bitwise
            complement of the version

    Returns:
        Decoded Frame (bytes beyond the declared payload are ignored)

    Raises:
        FramingError: On incomplete header/payload or, in strict mode,
            a version mismatch
    """
    if len(data) < HEADER_SIZE:
        raise FramingError(
            f"Insufficient data for DoIP header: {len(data)} < {HEADER_SIZE}",
            "HEADER_INCOMPLETE",
        )

    version, inverse, payload_type, payload_length = struct.unpack_from(
        HEADER_FORMAT, data
    )

    if len(data) - HEADER_SIZE < payload_length:
        raise FramingError(
            f"Insufficient data for DoIP payload: "
            f"{len(data) - HEADER_SIZE} < {payload_length}",
            "PAYLOAD_INCOMPLETE",
        )

    if strict and inverse != (~version & 0xFF):
        raise FramingError(
            f"Inverse protocol version 0x{inverse:02X} does not match "
            f"version 0x{version:02X}",
            "VERSION_MISMATCH",
        )

    return Frame(
        payload_type=PayloadType(payload_type),
        payload=bytes(data[HEADER_SIZE : HEADER_SIZE + payload_length]),
        protocol_version=version,
        inverse_protocol_version=inverse,
    )


@dataclass(frozen=True)
class DiagnosticMessage:
    """Diagnostic message payload: logical addresses plus UDS bytes."""

    source_address: int
    target_address: int
    user_data: bytes = b""

    def to_payload(self) -> bytes:
        """Source and target address (big-endian) followed by user data."""
        try:
            addresses = struct.pack("!HH", self.source_address, self.target_address)
        except struct.error as e:
            raise FramingError(f"Logical address out of range: {e}", "FIELD_RANGE") from e
        return addresses + bytes(self.user_data)

    def to_frame(self) -> Frame:
        """Wrap as a diagnostic-message frame."""
        return Frame.create(PayloadType.DIAGNOSTIC_MESSAGE, self.to_payload())

    @classmethod
    def from_payload(cls, payload: bytes) -> "DiagnosticMessage":
        """Split a diagnostic-message payload."""
        if len(payload) < 4:
            raise FramingError(
                f"Diagnostic message payload too short: {len(payload)} < 4",
                "PAYLOAD_INCOMPLETE",
            )
        source, target = struct.unpack_from("!HH", payload)
        return cls(source_address=source, target_address=target, user_data=bytes(payload[4:]))

    @classmethod
    def from_frame(cls, frame: Frame) -> "DiagnosticMessage":
        """Extract the diagnostic message carried by a frame."""
        if frame.payload_type != PayloadType.DIAGNOSTIC_MESSAGE:
            raise FramingError(
                f"Expected Diagnostic Message, got {frame.payload_type.description}",
                "UNEXPECTED_PAYLOAD_TYPE",
            )
        return cls.from_payload(frame.payload)


def routing_activation_payload(
    source_address: int, activation_type: int = ROUTING_ACTIVATION_DEFAULT
) -> bytes:
    """Source address, activation type and 4 reserved zero bytes."""
    try:
        return struct.pack("!HB", source_address, activation_type) + b"\x00" * 4
    except struct.error as e:
        raise FramingError(f"Routing activation field out of range: {e}", "FIELD_RANGE") from e


@dataclass(frozen=True)
class RoutingActivationResponse:
    """Parsed routing activation response payload."""

    tester_address: int
    entity_address: int
    response_code: int

    @property
    def successful(self) -> bool:
        return self.response_code == ROUTING_ACTIVATION_SUCCESS

    @classmethod
    def from_payload(cls, payload: bytes) -> "RoutingActivationResponse":
        if len(payload) < 5:
            raise FramingError(
                f"Routing activation response too short: {len(payload)} < 5",
                "PAYLOAD_INCOMPLETE",
            )
        tester, entity, code = struct.unpack_from("!HHB", payload)
        return cls(tester_address=tester, entity_address=entity, response_code=code)
