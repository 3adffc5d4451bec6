"""
Tests for the DoIP frame codec.
"""

import pytest

from doip_uds.protocols.doip_message import (
    HEADER_SIZE,
    DiagnosticMessage,
    Frame,
    FramingError,
    PayloadType,
    RoutingActivationResponse,
    decode_frame,
    encode_frame,
    parse_payload_length,
    routing_activation_payload,
)


class TestFrameEncoding:
    """Tests for frame serialization."""

    def test_header_layout(self):
        """Test version, payload type and length are written big-endian."""
        frame = Frame.create(PayloadType.DIAGNOSTIC_MESSAGE, b"\x0e\x80\x0e\xe0\x3e\x00")

        data = frame.encode()

        assert data[:8] == bytes([0x02, 0xFD, 0x80, 0x01, 0x00, 0x00, 0x00, 0x06])
        assert data[8:] == b"\x0e\x80\x0e\xe0\x3e\x00"

    def test_encoded_length(self):
        """Test encoded size is header plus payload."""
        payload = bytes(range(256)) * 3
        frame = Frame.create(PayloadType.DIAGNOSTIC_MESSAGE, payload)

        data = encode_frame(frame)

        assert len(data) == HEADER_SIZE + len(payload)
        assert int.from_bytes(data[4:8], "big") == len(payload)

    def test_empty_payload(self):
        """Test a request without payload is just the header."""
        frame = Frame.create(PayloadType.VEHICLE_IDENTIFICATION_REQUEST)

        assert frame.encode() == bytes.fromhex("02fd000100000000")
        assert frame.payload_length == 0

    def test_payload_length_follows_payload(self):
        """Test the length field is derived from the payload."""
        frame = Frame.create(PayloadType.ALIVE_CHECK_RESPONSE, b"\x0e\x80")
        assert frame.payload_length == 2

    def test_version_out_of_range(self):
        """Test frames with versions outside a byte cannot be built."""
        with pytest.raises(FramingError):
            Frame(PayloadType.DIAGNOSTIC_MESSAGE, b"", protocol_version=0x100)

    def test_payload_type_out_of_range(self):
        """Test payload types outside 16 bits are rejected."""
        with pytest.raises(FramingError):
            Frame(0x10000, b"")

    def test_plain_int_payload_type(self):
        """Test an int payload type is normalized to the enumeration."""
        frame = Frame.create(0x8001, b"")
        assert frame.payload_type is PayloadType.DIAGNOSTIC_MESSAGE


class TestFrameDecoding:
    """Tests for frame parsing."""

    def test_round_trip(self):
        """Test decode(encode(f)) == f for representative frames."""
        frames = [
            Frame.create(PayloadType.VEHICLE_IDENTIFICATION_REQUEST),
            Frame.create(PayloadType.ROUTING_ACTIVATION_REQUEST, routing_activation_payload(0x0E80)),
            Frame.create(PayloadType.DIAGNOSTIC_MESSAGE, b"\x0e\x80\x0e\xe0\x22\xf1\x90"),
            Frame(PayloadType.ENTITY_STATUS_RESPONSE, b"\x00\x10", 0x03, 0xFC),
        ]

        for frame in frames:
            assert decode_frame(encode_frame(frame)) == frame

    def test_incomplete_header(self):
        """Test fewer than 8 bytes is an incomplete header."""
        with pytest.raises(FramingError) as exc_info:
            decode_frame(bytes.fromhex("02fd8001000000"))

        assert exc_info.value.code == "HEADER_INCOMPLETE"

    def test_incomplete_payload(self):
        """Test a declared length larger than the data is rejected."""
        data = bytes.fromhex("02fd800100000005") + b"\x0e\x80\x0e"

        with pytest.raises(FramingError) as exc_info:
            decode_frame(data)

        assert exc_info.value.code == "PAYLOAD_INCOMPLETE"

    def test_trailing_bytes_ignored(self):
        """Test bytes after the declared payload are not part of the frame."""
        data = bytes.fromhex("02fd000800000002") + b"\x0e\x80" + b"\xff\xff"

        frame = decode_frame(data)

        assert frame.payload_type == PayloadType.ALIVE_CHECK_RESPONSE
        assert frame.payload == b"\x0e\x80"

    def test_unknown_payload_type(self):
        """Test unknown codes decode to an unrecognized payload type."""
        data = bytes.fromhex("02fd123400000001") + b"\xaa"

        frame = decode_frame(data)

        assert not frame.payload_type.is_recognized
        assert frame.payload_type == 0x1234
        assert frame.payload_type.description == "Unknown Payload Type"
        assert frame.encode() == data

    def test_unknown_payload_type_not_registered(self):
        """Test decoding an unknown code leaves the enumeration unchanged."""
        members = list(PayloadType)

        frame = decode_frame(bytes.fromhex("02fd123400000000"))

        assert frame.payload_type == 0x1234
        assert list(PayloadType) == members
        assert 0x1234 not in PayloadType._value2member_map_
        assert PayloadType(0x1234) == PayloadType(0x1234)

    def test_known_payload_type_recognized(self):
        """Test enumerated codes are recognized."""
        assert PayloadType.ROUTING_ACTIVATION_RESPONSE.is_recognized
        assert PayloadType(0x0006).description == "Routing Activation Response"

    def test_inverse_version_not_checked_by_default(self):
        """Test lenient decoding accepts a mismatched inverse version."""
        data = bytes.fromhex("0200000100000000")

        frame = decode_frame(data)

        assert frame.inverse_protocol_version == 0x00
        assert not frame.header_is_valid

    def test_strict_rejects_version_mismatch(self):
        """Test strict decoding rejects a mismatched inverse version."""
        data = bytes.fromhex("0200000100000000")

        with pytest.raises(FramingError) as exc_info:
            Frame.decode(data, strict=True)

        assert exc_info.value.code == "VERSION_MISMATCH"

    def test_strict_accepts_valid_header(self):
        """Test strict decoding accepts a proper version pair."""
        frame = Frame.decode(bytes.fromhex("02fd000100000000"), strict=True)
        assert frame.header_is_valid

    def test_parse_payload_length(self):
        """Test payload length is read from header bytes 4-7."""
        assert parse_payload_length(bytes.fromhex("02fd800101020304")) == 0x01020304


class TestPayloadHelpers:
    """Tests for diagnostic message and routing activation payloads."""

    def test_diagnostic_message_layout(self):
        """Test addresses precede the UDS bytes."""
        message = DiagnosticMessage(0x0E80, 0x0EE0, bytes([0x22, 0xF1, 0x90]))

        assert message.to_payload() == bytes([0x0E, 0x80, 0x0E, 0xE0, 0x22, 0xF1, 0x90])

    def test_diagnostic_message_from_frame(self):
        """Test a diagnostic message frame splits into addresses and data."""
        frame = Frame.create(PayloadType.DIAGNOSTIC_MESSAGE, bytes.fromhex("0ee00e80620000"))

        message = DiagnosticMessage.from_frame(frame)

        assert message.source_address == 0x0EE0
        assert message.target_address == 0x0E80
        assert message.user_data == bytes.fromhex("620000")

    def test_diagnostic_message_wrong_type(self):
        """Test other payload types are not diagnostic messages."""
        frame = Frame.create(PayloadType.DIAGNOSTIC_MESSAGE_POSITIVE_ACK, bytes(5))

        with pytest.raises(FramingError):
            DiagnosticMessage.from_frame(frame)

    def test_diagnostic_message_too_short(self):
        """Test payloads without both addresses are rejected."""
        with pytest.raises(FramingError):
            DiagnosticMessage.from_payload(b"\x0e\x80\x0e")

    def test_routing_activation_payload(self):
        """Test source address, activation type and reserved bytes."""
        assert routing_activation_payload(0x0E80) == bytes.fromhex("0e800000000000")
        assert routing_activation_payload(0x0E80, 0x01) == bytes.fromhex("0e800100000000")

    def test_routing_activation_response(self):
        """Test parsing a successful routing activation response."""
        response = RoutingActivationResponse.from_payload(bytes.fromhex("0e80100010000000 00"))

        assert response.tester_address == 0x0E80
        assert response.entity_address == 0x1000
        assert response.response_code == 0x10
        assert response.successful

    def test_routing_activation_denied(self):
        """Test a denial code is not successful."""
        response = RoutingActivationResponse.from_payload(bytes.fromhex("0e80100006"))
        assert not response.successful
