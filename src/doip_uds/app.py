"""
DoIP UDS - Command-line demonstration driver

Usage:
    doip-uds [--host ADDR] [--port PORT] [--config PATH] [--timeout S]
             [--retries N] [--source ADDR] [--target ADDR]
             [--tester-present-count N] [--debug] [--log-dir DIR]

Runs a fixed diagnostic scenario against one DoIP gateway: vehicle
identification, routing activation, VIN read, DTC read, routine control
and periodic tester present.
"""

import argparse
import sys
import time
from pathlib import Path

from doip_uds import __version__
from doip_uds.core.app_logging import get_logger, setup_logging
from doip_uds.core.config import AppConfig, load_config
from doip_uds.protocols.doip_client import DoIPClient
from doip_uds.protocols.doip_message import FramingError
from doip_uds.protocols.uds_client import UDSClient, UDSError, UDSServiceID, format_hex
from doip_uds.transport.base import DoIPConnectionError

logger = get_logger(__name__)

VIN_DID = 0xF190
CHECK_PROGRAMMING_PRECONDITIONS = 0xFF00
TESTER_PRESENT_INTERVAL = 2.0


def read_data_by_id_handler(data: bytes) -> str:
    """Report the DID and value of a ReadDataByIdentifier response."""
    if len(data) < 3:
        return ""
    did = int.from_bytes(data[1:3], "big")
    return f"DID: 0x{did:04x}\nValue: {format_hex(data[3:])}\n"


def separator() -> None:
    print("-" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doip-uds",
        description="Run a UDS diagnostic scenario over DoIP",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="YAML or JSON configuration file")
    parser.add_argument("--host", help="DoIP entity IPv4 address")
    parser.add_argument("--port", type=int, help="DoIP entity TCP port")
    parser.add_argument("--timeout", type=float, help="Response timeout in seconds")
    parser.add_argument("--retries", type=int, help="Attempts per request")
    parser.add_argument(
        "--source", type=lambda v: int(v, 0), help="Tester logical address (e.g. 0x0E80)"
    )
    parser.add_argument(
        "--target", type=lambda v: int(v, 0), help="ECU logical address (e.g. 0x0EE0)"
    )
    parser.add_argument(
        "--tester-present-count",
        type=int,
        default=5,
        help="Number of tester present messages to send",
    )
    parser.add_argument("--log-dir", type=Path, help="Directory for session logs")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Apply command-line options on top of the loaded configuration."""
    conn = config.connection
    if args.host is not None:
        conn.server_address = args.host
    if args.port is not None:
        conn.port = args.port
    if args.timeout is not None:
        conn.response_timeout = args.timeout
    if args.retries is not None:
        conn.retry_count = args.retries
    if args.source is not None:
        conn.source_address = args.source
    if args.target is not None:
        conn.target_address = args.target
    if args.log_dir is not None:
        config.logging.log_dir = str(args.log_dir)
    return config


def run_scenario(
    client: DoIPClient,
    uds: UDSClient,
    source: int,
    target: int,
    tester_present_count: int = 5,
    interval: float = TESTER_PRESENT_INTERVAL,
) -> None:
    """Run the diagnostic scenario on a connected client."""
    print("Sending Vehicle Identification Request...")
    response = client.send_vehicle_identification_request()
    print(f"Received: {response.payload_type.description}")
    separator()

    print("Activating diagnostic session...")
    response = client.send_routing_activation_request(source)
    print(f"Routing activation response: {response.payload_type.description}")
    separator()

    uds.add_service_handler(UDSServiceID.READ_DATA_BY_ID, read_data_by_id_handler)

    print("Reading Vehicle Identification Number...")
    vin = client.request_uds(source, target, uds.read_data_by_identifier(VIN_DID))
    print(f"VIN Response:\n{uds.interpret_response(vin)}")
    separator()

    print("Reading Diagnostic Trouble Codes...")
    dtcs = client.request_uds(source, target, uds.read_dtc_information(0x02))
    print(f"DTC Response:\n{uds.interpret_response(dtcs)}")
    separator()

    print("Performing Routine Control: Check Programming Preconditions...")
    routine = client.request_uds(
        source, target, uds.routine_control(0x01, CHECK_PROGRAMMING_PRECONDITIONS)
    )
    print(f"Routine Control Response:\n{uds.interpret_response(routine)}")
    separator()

    print(f"Sending {tester_present_count} periodic Tester Present messages...")
    for i in range(tester_present_count):
        reply = client.request_uds(source, target, uds.tester_present(0x00))
        print(f"Tester Present sent. Response: {uds.interpret_response(reply)}")
        if i < tester_present_count - 1:
            time.sleep(interval)
    separator()


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    args = build_parser().parse_args(argv)

    config = apply_overrides(load_config(args.config), args)
    setup_logging(
        Path(config.logging.log_dir),
        debug=args.debug,
        level=config.logging.log_level,
        log_raw_protocol=config.logging.log_raw_protocol,
    )

    conn = config.connection
    client = DoIPClient.from_config(conn)
    uds = UDSClient()

    try:
        print(f"Connecting to DoIP server {conn.server_address}:{conn.port}...")
        client.connect()
        print("Connected successfully.")
        separator()

        run_scenario(
            client,
            uds,
            conn.source_address,
            conn.target_address,
            tester_present_count=args.tester_present_count,
        )

        print("Disconnecting from DoIP server...")
        client.disconnect()
        print("Disconnected successfully.")
        return 0

    except DoIPConnectionError as e:
        logger.error(f"DoIP connection error: {e}")
        print(f"DoIP Connection error: {e.message}", file=sys.stderr)
    except UDSError as e:
        logger.error(f"UDS error: {e}")
        print(f"UDS error: {e.message}", file=sys.stderr)
    except FramingError as e:
        logger.error(f"Framing error: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
    finally:
        client.disconnect()

    return 1


if __name__ == "__main__":
    sys.exit(main())
