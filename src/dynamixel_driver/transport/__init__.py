"""Byte-stream transports the driver can run over."""

from .serial_connection import PortInfo, SerialConnection, Transport
