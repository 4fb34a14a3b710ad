"""Parsing of the beacon tables found in a DORIS RINEX header.

Example ``STATION REFERENCE`` record::

    D31  DIOB DIONYSOS                      12602S012  4   0
    0123456789012345678901234567890123456789012345678901234
              10        20        30        40        50

The internal number (``31``) is what data records use to refer to the
beacon; the 4-character station code may repeat across missions.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from constants.doris_constants import BEACON_RECORD_MARKER
from doris_utils.doris_dataclass import Beacon, TimeReferenceStation
from doris_utils.errors import (
    HeaderFormatError,
    NumericParseError,
    RecordFormatError,
)

logger = logging.getLogger(__name__)


def _check_marker(line: str, label: str) -> None:
    if not line.startswith(BEACON_RECORD_MARKER):
        raise RecordFormatError(
            f"'{label}' records should start with a '{BEACON_RECORD_MARKER}', "
            f"got {line[:3]!r}"
        )


def parse_beacon_line(line: str) -> Beacon:
    """Parse a ``STATION REFERENCE`` header line into a :class:`Beacon`."""

    _check_marker(line, "STATION REFERENCE")
    line = line.rstrip("\r\n").ljust(60)

    generation_char = line[51]
    if not generation_char.isdigit():
        raise NumericParseError(
            f"Invalid beacon generation {generation_char!r} for beacon {line[:3]}"
        )

    try:
        shift_factor = int(line[52:60])
    except ValueError:
        raise NumericParseError(
            f"Invalid frequency shift factor {line[52:60].strip()!r} "
            f"for beacon {line[:3]}"
        ) from None

    return Beacon(
        code=line[1:3],
        station_id=line[5:9].strip(),
        name=line[10:40].strip(),
        domes=line[40:50].strip(),
        generation=ord(generation_char) - ord("0"),
        shift_factor=shift_factor,
    )


def parse_time_ref_station_line(line: str) -> TimeReferenceStation:
    """Parse a ``TIME REF STATION`` header line.

    The beacon code is followed by the bias [us] and the shift [1e-14 s/s]
    of the beacon's clock.
    """

    _check_marker(line, "TIME REF STATION")
    fields = line[3:60].split()
    if len(fields) != 2:
        raise RecordFormatError(
            f"Expected bias and shift for time reference beacon {line[:3]}, "
            f"got {fields}"
        )
    try:
        bias, shift = map(float, fields)
    except ValueError:
        raise NumericParseError(
            f"Invalid bias/shift {fields} for time reference beacon {line[:3]}"
        ) from None
    return TimeReferenceStation(code=line[1:3], bias_us=bias, shift=shift)


class BeaconRegistry:
    """Beacons and time reference beacons of one RINEX file, in header order."""

    def __init__(self) -> None:
        self._beacons: List[Beacon] = []
        self._by_code: Dict[str, Beacon] = {}
        self._time_ref_stations: List[TimeReferenceStation] = []

    def add_beacon(self, beacon: Beacon) -> None:
        if beacon.code in self._by_code:
            logger.warning("Beacon code D%s listed more than once", beacon.code)
        else:
            self._by_code[beacon.code] = beacon
        self._beacons.append(beacon)

    def add_time_ref_station(self, station: TimeReferenceStation) -> None:
        self._time_ref_stations.append(station)

    @property
    def beacons(self) -> List[Beacon]:
        return list(self._beacons)

    @property
    def time_ref_stations(self) -> List[TimeReferenceStation]:
        return list(self._time_ref_stations)

    def get(self, code: str) -> Optional[Beacon]:
        return self._by_code.get(code)

    def validate_time_ref_stations(self) -> None:
        """Make sure every time reference beacon is a known beacon."""

        for station in self._time_ref_stations:
            if station.code not in self._by_code:
                raise HeaderFormatError(
                    f"Time reference beacon D{station.code} is not listed "
                    "under STATION REFERENCE"
                )

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __len__(self) -> int:
        return len(self._beacons)

    def __iter__(self) -> Iterator[Beacon]:
        return iter(self._beacons)
