"""Line protocol spoken by the sensor device.

Each line is ASCII and CR-terminated. Two kinds of line exist:

Data line::

    timestamp,reading1[C],reading2[C],...,readingN[C]

    - timestamp: unsigned integer, milliseconds since the device started
    - readingK: decimal temperature for channel K-1, optional trailing "C"
      unit suffix; an empty field means the sensor reported nothing this tick

Control line: the first character is one of ``# ? / -`` and the rest of the
line is an opaque status/info payload.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from telemetry.errors import ProtocolParseError

logger = logging.getLogger(__name__)

CONTROL_PREFIXES = frozenset("#?/-")
FIELD_SEPARATOR = ","
UNIT_SUFFIX = "C"
MAX_TIMESTAMP = 2**64 - 1

_TIMESTAMP_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class ControlDirective:
    """Non-data line carrying device status or info."""

    prefix: str
    payload: str


@dataclass(frozen=True)
class DataSample:
    """One decoded data line.

    Attributes:
        timestamp: Device time in milliseconds.
        readings: Exactly one entry per channel; None for a missing reading.
        fields_received: Reading fields the line actually carried.
    """

    timestamp: int
    readings: Tuple[Optional[float], ...]
    fields_received: int

    @property
    def count_mismatch(self) -> bool:
        return self.fields_received != len(self.readings)


ParsedLine = Union[ControlDirective, DataSample]


def _parse_timestamp(field: str, line: str) -> int:
    text = field.strip()
    if not _TIMESTAMP_RE.fullmatch(text):
        raise ProtocolParseError(line, f"invalid timestamp {text!r}")
    value = int(text)
    if value > MAX_TIMESTAMP:
        raise ProtocolParseError(line, f"timestamp {text} out of range")
    return value


def _parse_reading(field: str, line: str) -> Optional[float]:
    text = field.strip()
    if not text:
        return None
    if text.endswith(UNIT_SUFFIX):
        text = text[: -len(UNIT_SUFFIX)]
    # float() also takes digit separators and non-ASCII digits
    if "_" in text or not text.isascii():
        raise ProtocolParseError(line, f"invalid reading {field.strip()!r}")
    try:
        return float(text)
    except ValueError:
        raise ProtocolParseError(line, f"invalid reading {field.strip()!r}") from None


def parse_line(line: str, num_channels: int) -> ParsedLine:
    """Decode one line into a ControlDirective or a DataSample.

    Short lines are padded with None for the missing trailing channels; extra
    reading fields beyond ``num_channels`` are ignored.

    Raises:
        ProtocolParseError: the line is empty or a field does not parse.
    """
    if not line:
        raise ProtocolParseError(line, "empty line")
    if line[0] in CONTROL_PREFIXES:
        return ControlDirective(prefix=line[0], payload=line[1:])

    fields = line.split(FIELD_SEPARATOR)
    timestamp = _parse_timestamp(fields[0], line)
    raw_readings = fields[1:]
    readings = [_parse_reading(f, line) for f in raw_readings[:num_channels]]
    readings.extend([None] * (num_channels - len(readings)))
    return DataSample(timestamp=timestamp, readings=tuple(readings), fields_received=len(raw_readings))


def log_directive(directive: ControlDirective) -> None:
    """Default directive handler: log and otherwise ignore."""
    logger.info("Info string received: %s%s", directive.prefix, directive.payload)


class LineProtocolParser:
    """Stateless parser bound to a channel count, dispatching control lines.

    Args:
        num_channels: Number of reading fields a data line maps onto.
        on_directive: Called for every control directive (defaults to logging).
    """

    def __init__(self, num_channels: int, on_directive: Callable[[ControlDirective], None] | None = None):
        self.num_channels = int(num_channels)
        self.on_directive = on_directive or log_directive

    def parse(self, line: str) -> ParsedLine:
        result = parse_line(line, self.num_channels)
        if isinstance(result, ControlDirective):
            self.on_directive(result)
        elif result.count_mismatch:
            logger.debug(
                "Line carried %d reading fields for %d channels: %r",
                result.fields_received, self.num_channels, line,
            )
        return result
