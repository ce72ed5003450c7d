import pytest

from telemetry.acquisition.protocol import ControlDirective, DataSample, LineProtocolParser, parse_line
from telemetry.errors import ProtocolParseError


def test_data_line_with_missing_reading():
    out = parse_line("1000,21.5C,,22.0C", num_channels=3)
    assert isinstance(out, DataSample)
    assert out.timestamp == 1000
    assert out.readings == (21.5, None, 22.0)
    assert not out.count_mismatch


def test_control_directive_payload():
    out = parse_line("#status ok", num_channels=3)
    assert out == ControlDirective(prefix="#", payload="status ok")


@pytest.mark.parametrize("prefix", ["#", "?", "/", "-"])
def test_all_control_prefixes(prefix):
    out = parse_line(prefix + "info", num_channels=8)
    assert isinstance(out, ControlDirective)
    assert out.payload == "info"


def test_short_line_pads_with_none():
    out = parse_line("5,1.0C", num_channels=4)
    assert out.readings == (1.0, None, None, None)
    assert out.fields_received == 1
    assert out.count_mismatch


def test_timestamp_only_line():
    out = parse_line("7", num_channels=2)
    assert out.readings == (None, None)
    assert out.fields_received == 0


def test_long_line_ignores_extras():
    out = parse_line("5,1C,2C,3C,garbage", num_channels=2)
    assert out.readings == (1.0, 2.0)
    assert out.fields_received == 4


def test_unit_suffix_is_optional():
    out = parse_line("5,1.5,-2.25C", num_channels=2)
    assert out.readings == (1.5, -2.25)


@pytest.mark.parametrize("line", [
    "abc,1C",
    "1.5,1C",
    ",1C",
    "12,2x.0C",
    "12,C",
    "12,1.0F",
    str(2**64) + ",1C",
    "１０００,21.5C",
    "1000,2_1.5C",
    "1000,２1.5C",
])
def test_malformed_lines_rejected(line):
    with pytest.raises(ProtocolParseError):
        parse_line(line, num_channels=2)


def test_empty_line_rejected():
    with pytest.raises(ProtocolParseError):
        parse_line("", num_channels=2)


def test_parse_error_carries_line():
    with pytest.raises(ProtocolParseError) as exc:
        parse_line("100,oops", num_channels=1)
    assert exc.value.line == "100,oops"
    assert "oops" in exc.value.reason


def test_parser_dispatches_directives():
    seen = []
    parser = LineProtocolParser(2, on_directive=seen.append)
    parser.parse("?version 1.2")
    parser.parse("1,1C,2C")
    assert seen == [ControlDirective("?", "version 1.2")]
