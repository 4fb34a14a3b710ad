import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from doris_utils.doris_dataclass import TimeReferenceStation
from doris_utils.errors import HeaderFormatError, NumericParseError, RecordFormatError
from utilities.beacon_parser import (
    BeaconRegistry,
    parse_beacon_line,
    parse_time_ref_station_line,
)

STATION_LINE = (
    "D31  DIOB DIONYSOS                      12602S012  4   0"
    "     STATION REFERENCE"
)


def test_parse_beacon_line():
    beacon = parse_beacon_line(STATION_LINE)
    assert beacon.code == "31"
    assert beacon.station_id == "DIOB"
    assert beacon.name == "DIONYSOS"
    assert beacon.domes == "12602S012"
    assert beacon.generation == 4
    assert beacon.shift_factor == 0


def test_parse_beacon_line_negative_shift():
    line = "D02  AJAB AJACCIO                       10077S002  3  -2"
    beacon = parse_beacon_line(line)
    assert beacon.generation == 3
    assert beacon.shift_factor == -2


def test_parse_beacon_line_requires_marker():
    with pytest.raises(RecordFormatError):
        parse_beacon_line(" " + STATION_LINE[1:])


def test_parse_beacon_line_bad_generation():
    line = STATION_LINE[:51] + "X" + STATION_LINE[52:]
    with pytest.raises(NumericParseError):
        parse_beacon_line(line)


def test_parse_time_ref_station_line():
    station = parse_time_ref_station_line("D31        -4.823        43.190")
    assert station == TimeReferenceStation(code="31", bias_us=-4.823, shift=43.19)


def test_parse_time_ref_station_line_errors():
    with pytest.raises(RecordFormatError):
        parse_time_ref_station_line("D31        -4.823")
    with pytest.raises(NumericParseError):
        parse_time_ref_station_line("D31        -4.823        abc")
    with pytest.raises(RecordFormatError):
        parse_time_ref_station_line("X31        -4.823        43.190")


def test_registry_lookup():
    registry = BeaconRegistry()
    beacon = parse_beacon_line(STATION_LINE)
    registry.add_beacon(beacon)

    assert len(registry) == 1
    assert "31" in registry
    assert "32" not in registry
    assert registry.get("31") is beacon
    assert registry.get("32") is None
    assert list(registry) == [beacon]


def test_registry_keeps_first_of_duplicate_codes():
    registry = BeaconRegistry()
    first = parse_beacon_line(STATION_LINE)
    second = parse_beacon_line(STATION_LINE.replace("DIOB", "DIOC"))
    registry.add_beacon(first)
    registry.add_beacon(second)

    assert len(registry) == 2
    assert registry.get("31") is first


def test_registry_validates_time_ref_stations():
    registry = BeaconRegistry()
    registry.add_beacon(parse_beacon_line(STATION_LINE))
    registry.add_time_ref_station(TimeReferenceStation("31", 0.1, 2.0))
    registry.validate_time_ref_stations()

    registry.add_time_ref_station(TimeReferenceStation("07", 0.1, 2.0))
    with pytest.raises(HeaderFormatError):
        registry.validate_time_ref_stations()
    assert [s.code for s in registry.time_ref_stations] == ["31", "07"]
