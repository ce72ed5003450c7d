"""Acquisition subpackage: device line protocol and serial ingestion.
Exports the parser types and the ingestion loop.
"""
from .protocol import ControlDirective, DataSample, LineProtocolParser, parse_line
from .serial_source import IngestionState, PortSelection, SerialIngestionLoop, available_ports
