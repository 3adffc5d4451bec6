"""
UDS Service Codec

Builds UDS (Unified Diagnostic Services, ISO 14229-1) request payloads
and turns response payloads into human-readable reports, with a
per-instance registry of service-specific interpreters.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

from doip_uds.core.app_logging import get_logger, log_diagnostic_action
from doip_uds.protocols.doip_message import DiagnosticMessage, Frame, FramingError

logger = get_logger(__name__)


class UDSServiceID(IntEnum):
    """UDS Service Identifiers (ISO 14229-1)."""

    # Diagnostic and Communication Management
    DIAGNOSTIC_SESSION_CONTROL = 0x10
    ECU_RESET = 0x11
    SECURITY_ACCESS = 0x27
    COMMUNICATION_CONTROL = 0x28
    TESTER_PRESENT = 0x3E
    ACCESS_TIMING_PARAMETER = 0x83
    SECURED_DATA_TRANSMISSION = 0x84
    CONTROL_DTC_SETTING = 0x85
    RESPONSE_ON_EVENT = 0x86
    LINK_CONTROL = 0x87

    # Data Transmission
    READ_DATA_BY_ID = 0x22
    READ_MEMORY_BY_ADDRESS = 0x23
    READ_SCALING_DATA_BY_ID = 0x24
    READ_DATA_BY_PERIODIC_ID = 0x2A
    DYNAMICALLY_DEFINE_DATA_ID = 0x2C
    WRITE_DATA_BY_ID = 0x2E
    WRITE_MEMORY_BY_ADDRESS = 0x3D

    # Stored Data Transmission
    CLEAR_DTC_INFO = 0x14
    READ_DTC_INFO = 0x19

    # Input/Output Control
    INPUT_OUTPUT_CONTROL = 0x2F

    # Routine Control
    ROUTINE_CONTROL = 0x31

    # Upload/Download
    REQUEST_DOWNLOAD = 0x34
    REQUEST_UPLOAD = 0x35
    TRANSFER_DATA = 0x36
    REQUEST_TRANSFER_EXIT = 0x37


SERVICE_NAMES: dict[int, str] = {
    UDSServiceID.DIAGNOSTIC_SESSION_CONTROL: "DiagnosticSessionControl",
    UDSServiceID.ECU_RESET: "ECUReset",
    UDSServiceID.SECURITY_ACCESS: "SecurityAccess",
    UDSServiceID.COMMUNICATION_CONTROL: "CommunicationControl",
    UDSServiceID.TESTER_PRESENT: "TesterPresent",
    UDSServiceID.ACCESS_TIMING_PARAMETER: "AccessTimingParameter",
    UDSServiceID.SECURED_DATA_TRANSMISSION: "SecuredDataTransmission",
    UDSServiceID.CONTROL_DTC_SETTING: "ControlDTCSetting",
    UDSServiceID.RESPONSE_ON_EVENT: "ResponseOnEvent",
    UDSServiceID.LINK_CONTROL: "LinkControl",
    UDSServiceID.READ_DATA_BY_ID: "ReadDataByIdentifier",
    UDSServiceID.READ_MEMORY_BY_ADDRESS: "ReadMemoryByAddress",
    UDSServiceID.READ_SCALING_DATA_BY_ID: "ReadScalingDataByIdentifier",
    UDSServiceID.READ_DATA_BY_PERIODIC_ID: "ReadDataByPeriodicIdentifier",
    UDSServiceID.DYNAMICALLY_DEFINE_DATA_ID: "DynamicallyDefineDataIdentifier",
    UDSServiceID.WRITE_DATA_BY_ID: "WriteDataByIdentifier",
    UDSServiceID.WRITE_MEMORY_BY_ADDRESS: "WriteMemoryByAddress",
    UDSServiceID.CLEAR_DTC_INFO: "ClearDiagnosticInformation",
    UDSServiceID.READ_DTC_INFO: "ReadDTCInformation",
    UDSServiceID.INPUT_OUTPUT_CONTROL: "InputOutputControlByIdentifier",
    UDSServiceID.ROUTINE_CONTROL: "RoutineControl",
    UDSServiceID.REQUEST_DOWNLOAD: "RequestDownload",
    UDSServiceID.REQUEST_UPLOAD: "RequestUpload",
    UDSServiceID.TRANSFER_DATA: "TransferData",
    UDSServiceID.REQUEST_TRANSFER_EXIT: "RequestTransferExit",
}


class UDSNegativeResponse(IntEnum):
    """UDS Negative Response Codes (ISO 14229-1)."""

    GENERAL_REJECT = 0x10
    SERVICE_NOT_SUPPORTED = 0x11
    SUB_FUNCTION_NOT_SUPPORTED = 0x12
    INCORRECT_MESSAGE_LENGTH = 0x13
    RESPONSE_TOO_LONG = 0x14
    BUSY_REPEAT_REQUEST = 0x21
    CONDITIONS_NOT_CORRECT = 0x22
    REQUEST_SEQUENCE_ERROR = 0x24
    NO_RESPONSE_FROM_SUBNET = 0x25
    FAILURE_PREVENTS_EXEC = 0x26
    REQUEST_OUT_OF_RANGE = 0x31
    SECURITY_ACCESS_DENIED = 0x33
    INVALID_KEY = 0x35
    EXCEEDED_ATTEMPTS = 0x36
    REQUIRED_TIME_DELAY = 0x37
    UPLOAD_DOWNLOAD_NOT_ACCEPTED = 0x70
    TRANSFER_DATA_SUSPENDED = 0x71
    GENERAL_PROGRAMMING_FAILURE = 0x72
    WRONG_BLOCK_SEQUENCE = 0x73
    RESPONSE_PENDING = 0x78
    SERVICE_NOT_SUPPORTED_IN_SESSION = 0x7F


@dataclass
class UDSError(Exception):
    """UDS-level error."""

    message: str
    code: int
    service_id: int
    raw_response: bytes | None = None

    def __str__(self) -> str:
        return f"UDSError[0x{self.code:02X}]: {self.message}"


@dataclass
class UDSMessage:
    """A UDS request or response: service identifier plus data."""

    service_id: int
    data: bytes = b""

    def to_bytes(self) -> bytes:
        """Service identifier byte followed by the data."""
        return bytes([self.service_id]) + bytes(self.data)


ResponseHandler = Callable[[bytes], str]


def service_name(service_id: int) -> str:
    """Get the service name, "Unknown" for unlisted identifiers."""
    return SERVICE_NAMES.get(service_id, "Unknown")


def negative_response_name(code: int) -> str:
    """Get human-readable negative response code name."""
    try:
        return UDSNegativeResponse(code).name.replace("_", " ").title()
    except ValueError:
        return f"Unknown Error (0x{code:02X})"


def format_hex(data: bytes) -> str:
    """Lowercase hex dump, one space-separated byte pair per byte."""
    return " ".join(f"{byte:02x}" for byte in data)


def response_from_frame(frame: Frame) -> UDSMessage:
    """
    Extract the UDS message from a diagnostic-message frame.

    Raises:
        UDSError: If the frame is not a diagnostic message or carries no
            UDS bytes
    """
    try:
        message = DiagnosticMessage.from_frame(frame)
    except FramingError as e:
        raise UDSError(
            message=e.message,
            code=0xFC,
            service_id=0x00,
            raw_response=frame.payload,
        ) from e

    if not message.user_data:
        raise UDSError(
            message="Diagnostic message carries no UDS data",
            code=0xFC,
            service_id=0x00,
            raw_response=frame.payload,
        )

    return UDSMessage(
        service_id=message.user_data[0],
        data=message.user_data[1:],
    )


class UDSClient:
    """
    UDS request builder and response interpreter.

    Holds its own handler registry; handlers registered on one client are
    never seen by another.
    """

    def __init__(self) -> None:
        self._handlers: dict[int, ResponseHandler] = {}

    @staticmethod
    def create_request(service_id: int, data: bytes = b"") -> UDSMessage:
        """Create a UDS request. No schema validation is performed."""
        return UDSMessage(service_id=service_id, data=bytes(data))

    def add_service_handler(self, service_id: int, handler: ResponseHandler) -> None:
        """
        Register a response interpreter for a service.

        A later registration for the same service replaces the earlier one.
        """
        if service_id in self._handlers:
            logger.debug(f"Replacing response handler for {service_name(service_id)}")
        self._handlers[int(service_id)] = handler

    register_handler = add_service_handler

    def has_handler(self, service_id: int) -> bool:
        """Check if a custom interpreter is registered for a service."""
        return int(service_id) in self._handlers

    def interpret_response(self, response: UDSMessage) -> str:
        """
        Produce a human-readable report of a UDS response.

        Args:
            response: Service identifier and data as returned by the ECU

        Returns:
            Report text: service line, hex dump, then the registered
            handler's text or the default positive/negative interpretation

        Raises:
            UDSError: If the default interpretation is needed but data
                is empty
        """
        sid = int(response.service_id)
        data = bytes(response.data)

        lines = [f"Service: {service_name(sid)} (0x{sid:02x})\n"]
        if data:
            lines.append(f"Data: {format_hex(data)}\n")

        handler = self._handlers.get(sid)
        if handler is not None:
            lines.append(handler(data))
            return "".join(lines)

        if not data:
            raise UDSError(
                message="Empty response data",
                code=0xFC,
                service_id=sid,
                raw_response=data,
            )

        if data[0] == 0x00:
            lines.append("Status: Positive Response\n")
        else:
            lines.append("Status: Negative Response\n")
            if len(data) > 1:
                lines.append(
                    f"NRC: 0x{data[1]:02x} ({negative_response_name(data[1])})\n"
                )

        return "".join(lines)

    # High-level request builders

    def diagnostic_session_control(self, session_type: int) -> UDSMessage:
        """
        Build a session change request.

        Args:
            session_type: Session type (0x01=default, 0x02=programming, 0x03=extended)
        """
        return self.create_request(
            UDSServiceID.DIAGNOSTIC_SESSION_CONTROL, bytes([session_type])
        )

    def ecu_reset(self, reset_type: int) -> UDSMessage:
        """
        Build an ECU reset request.

        Args:
            reset_type: Reset type (0x01=hard, 0x02=keyoff/on, 0x03=soft)
        """
        log_diagnostic_action("ecu_reset", details={"reset_type": reset_type})
        return self.create_request(UDSServiceID.ECU_RESET, bytes([reset_type]))

    def read_data_by_identifier(self, data_id: int) -> UDSMessage:
        """Build a read request for one 16-bit data identifier."""
        return self.create_request(
            UDSServiceID.READ_DATA_BY_ID, data_id.to_bytes(2, "big")
        )

    def write_data_by_identifier(self, data_id: int, data: bytes) -> UDSMessage:
        """Build a write request: 16-bit data identifier followed by data."""
        log_diagnostic_action(
            "write_data_by_id", details={"data_id": f"0x{data_id:04X}"}
        )
        return self.create_request(
            UDSServiceID.WRITE_DATA_BY_ID, data_id.to_bytes(2, "big") + bytes(data)
        )

    def routine_control(
        self,
        control_type: int,
        routine_id: int,
        options: bytes = b"",
    ) -> UDSMessage:
        """
        Build a routine control request.

        Args:
            control_type: Control type (0x01=start, 0x02=stop, 0x03=request results)
            routine_id: 16-bit routine identifier
            options: Optional routine control option record
        """
        log_diagnostic_action(
            "routine_control",
            details={
                "control_type": control_type,
                "routine_id": f"0x{routine_id:04X}",
            },
        )
        return self.create_request(
            UDSServiceID.ROUTINE_CONTROL,
            bytes([control_type]) + routine_id.to_bytes(2, "big") + bytes(options),
        )

    def tester_present(self, sub_function: int = 0x00) -> UDSMessage:
        """Build a tester present request (0x80 suppresses the response)."""
        return self.create_request(UDSServiceID.TESTER_PRESENT, bytes([sub_function]))

    def read_dtc_information(self, sub_function: int, data: bytes = b"") -> UDSMessage:
        """Build a DTC read request (e.g. 0x02 = report DTCs by status mask)."""
        return self.create_request(
            UDSServiceID.READ_DTC_INFO, bytes([sub_function]) + bytes(data)
        )

    def clear_diagnostic_information(self, group: int = 0xFFFFFF) -> UDSMessage:
        """Build a DTC clear request (0xFFFFFF = all groups)."""
        log_diagnostic_action("clear_dtc", details={"group": f"0x{group:06X}"})
        return self.create_request(UDSServiceID.CLEAR_DTC_INFO, group.to_bytes(3, "big"))

    def control_dtc_setting(self, on: bool) -> UDSMessage:
        """Build a request enabling (True) or disabling DTC setting."""
        return self.create_request(
            UDSServiceID.CONTROL_DTC_SETTING, bytes([0x01 if on else 0x02])
        )
