"""
DoIP UDS - Diagnostics over IP client

A client for DoIP (ISO 13400-2) gateways that tunnels UDS (ISO 14229-1)
diagnostic requests over a single TCP connection, with request/response
timeout and retry handling and pluggable UDS response interpretation.
"""

__version__ = "0.1.0"
__author__ = "DoIP UDS Contributors"
