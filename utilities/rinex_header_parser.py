"""DORIS RINEX observation header parser.

The header is read line by line until ``END OF HEADER``.  Each line is
identified by the label in columns 61-80; the first 60 columns hold the
fixed-width content of the record (see RINEX DORIS 3.0, Issue 1.7).

``parse_header``
    Reads the header from an open text stream and returns a
    :class:`DorisRinexHeader`.  The stream is left positioned on the first
    data record, and the position is kept in ``end_of_header``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TextIO, Tuple

import numpy as np
import pandas as pd

from constants.doris_constants import (
    DORIS_SYSTEM_CHAR,
    HEADER_LABEL_SLICE,
    IGNORED_HEADER_LABELS,
    LABEL_ANT_TYPE,
    LABEL_APPROX_POSITION_XYZ,
    LABEL_CENTER_OF_MASS_XYZ,
    LABEL_COSPAR_NUMBER,
    LABEL_END_OF_HEADER,
    LABEL_L2_L1_DATE_OFFSET,
    LABEL_NUM_STATIONS,
    LABEL_RCV_CLOCK_OFFS_APPL,
    LABEL_REC_TYPE_VERS,
    LABEL_RINEX_VERSION_TYPE,
    LABEL_SATELLITE_NAME,
    LABEL_STATION_REFERENCE,
    LABEL_SYS_NUM_OBS,
    LABEL_SYS_SCALE_FACTOR,
    LABEL_TIME_OF_FIRST_OBS,
    LABEL_TIME_REF_STAT_DATE,
    LABEL_TIME_REF_STATION,
    MANDATORY_HEADER_LABELS,
    MAX_HEADER_CHARS,
    MAX_OBS_PER_DATA_LINE,
    MAX_SECONDS_NS,
    OBSERVATION_FILE_TYPE,
)
from doris_utils.errors import DorisRinexError, HeaderFormatError
from doris_utils.observation_codes import ObservationCode, parse_code
from utilities.beacon_parser import (
    BeaconRegistry,
    parse_beacon_line,
    parse_time_ref_station_line,
)
from utilities.parameters import DorisRinexParameters

logger = logging.getLogger(__name__)


@dataclass
class DorisRinexHeader:
    """Metadata read from the header of a DORIS observation RINEX file."""

    version: float = 0.0
    satellite_name: str = ""
    cospar_number: str = ""
    receiver_chain: str = ""  # e.g. "CHAIN1"
    receiver_type: str = ""  # e.g. "DGXX"
    receiver_version: str = ""  # on-board software version, e.g. "1.00"
    antenna_type: str = ""  # e.g. "STAREC"
    antenna_number: str = ""  # e.g. "DORIS"
    # Position of the 2 GHz phase center in the platform frame [m]
    approx_position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    # Vehicle center of mass at the beginning of the mission [m]
    center_of_mass: np.ndarray = field(default_factory=lambda: np.zeros(3))
    obs_codes: List[ObservationCode] = field(default_factory=list)
    # One-to-one with obs_codes; 1 means no rescaling
    obs_scale_factors: List[int] = field(default_factory=list)
    time_of_first_obs: Optional[pd.Timestamp] = None
    time_system: str = ""
    # Day of the first measurement on the first time reference beacon, 00:00:00
    time_ref_stat_date: Optional[pd.Timestamp] = None
    # 400 MHz phase date minus 2 GHz phase date [us]
    l12_date_offset: float = 0.0
    rcv_clock_offs_appl: bool = False
    num_stations: Optional[int] = None
    beacons: BeaconRegistry = field(default_factory=BeaconRegistry)
    # Stream position of the first data record
    end_of_header: int = 0
    num_header_lines: int = 0

    @property
    def lines_per_beacon(self) -> int:
        """Record lines needed per beacon; each holds at most 5 observables."""
        return math.ceil(len(self.obs_codes) / MAX_OBS_PER_DATA_LINE)

    @property
    def time_ref_stations(self):
        return self.beacons.time_ref_stations

    def obs_index(self, code: ObservationCode) -> int:
        """Index of an observation code in every beacon's value list."""
        try:
            return self.obs_codes.index(code)
        except ValueError:
            raise KeyError(f"Observation code {code} not in RINEX header") from None


def _parse_float(field_str: str, label: str) -> float:
    try:
        return float(field_str)
    except ValueError:
        raise HeaderFormatError(
            f"Invalid numeric value {field_str.strip()!r} in '{label}'"
        ) from None


def _parse_int(field_str: str, label: str) -> int:
    try:
        return int(field_str)
    except ValueError:
        raise HeaderFormatError(
            f"Invalid integer value {field_str.strip()!r} in '{label}'"
        ) from None


def parse_seconds_ns(field_str: str) -> int:
    """Convert a fixed-point seconds field to integer nanoseconds, exactly."""

    text = field_str.strip()
    whole, _, fraction = text.partition(".")
    if not whole.isdigit() or (fraction and not fraction.isdigit()):
        raise ValueError(f"Invalid seconds field {text!r}")
    if len(fraction) > 9:
        raise ValueError(f"Seconds field {text!r} has sub-nanosecond digits")
    seconds_ns = int(whole) * 1_000_000_000 + int(fraction.ljust(9, "0"))
    if seconds_ns >= MAX_SECONDS_NS:
        raise ValueError(f"Seconds field {text!r} out of range")
    return seconds_ns


def _parse_header_time(line: str, label: str) -> Tuple[pd.Timestamp, str]:
    """Parse a 5I6,F13.7,5X,A3 time record."""

    try:
        year, month, day, hour, minute = (
            int(line[i : i + 6]) for i in range(0, 30, 6)
        )
        seconds_ns = parse_seconds_ns(line[30:43])
        ts = pd.Timestamp(year=year, month=month, day=day, hour=hour, minute=minute)
        ts += pd.Timedelta(seconds_ns, unit="ns")
    except (ValueError, OverflowError) as err:
        raise HeaderFormatError(f"Invalid date in '{label}': {err}") from None
    return ts, line[48:51].strip()


def _parse_xyz(line: str, label: str) -> np.ndarray:
    return np.array([_parse_float(line[i : i + 14], label) for i in (0, 14, 28)])


class _HeaderParser:
    """Stateful reader for one header; use :func:`parse_header`."""

    def __init__(self, stream: TextIO, parameters: DorisRinexParameters):
        self._stream = stream
        self._params = parameters
        self._header = DorisRinexHeader()
        self._line_number = 0
        self._seen: set[str] = set()
        # (scale factor, obs code tokens or None for "all codes")
        self._scale_entries: List[Tuple[int, Optional[List[str]]]] = []
        self._handlers: Dict[str, Callable[[str], None]] = {
            LABEL_RINEX_VERSION_TYPE: self._version_type,
            LABEL_SATELLITE_NAME: self._satellite_name,
            LABEL_COSPAR_NUMBER: self._cospar_number,
            LABEL_REC_TYPE_VERS: self._receiver,
            LABEL_ANT_TYPE: self._antenna,
            LABEL_APPROX_POSITION_XYZ: self._approx_position,
            LABEL_CENTER_OF_MASS_XYZ: self._center_of_mass,
            LABEL_SYS_NUM_OBS: self._obs_types,
            LABEL_SYS_SCALE_FACTOR: self._scale_factor,
            LABEL_TIME_OF_FIRST_OBS: self._time_of_first_obs,
            LABEL_TIME_REF_STAT_DATE: self._time_ref_stat_date,
            LABEL_L2_L1_DATE_OFFSET: self._l12_date_offset,
            LABEL_RCV_CLOCK_OFFS_APPL: self._rcv_clock_offs_appl,
            LABEL_NUM_STATIONS: self._num_stations,
            LABEL_STATION_REFERENCE: self._station_reference,
            LABEL_TIME_REF_STATION: self._time_ref_station,
        }

    def _readline(self) -> str:
        raw = self._stream.readline()
        if not raw:
            raise HeaderFormatError(
                f"End of file reached before '{LABEL_END_OF_HEADER}'",
                line_number=self._line_number,
            )
        self._line_number += 1
        line = raw.rstrip()
        if len(line) >= MAX_HEADER_CHARS:
            raise HeaderFormatError(
                f"Header line longer than {MAX_HEADER_CHARS - 1} characters",
                line_number=self._line_number,
            )
        return line.ljust(80)

    def parse(self) -> DorisRinexHeader:
        while True:
            line = self._readline()
            label = line[HEADER_LABEL_SLICE].strip()
            if label == LABEL_END_OF_HEADER:
                break

            handler = self._handlers.get(label)
            if handler is None:
                if label in IGNORED_HEADER_LABELS or label in self._params.ignored_header_labels:
                    logger.debug("Skipping header record '%s'", label)
                    continue
                raise HeaderFormatError(
                    f"Unrecognized header label {label!r}",
                    line_number=self._line_number,
                )

            try:
                handler(line)
            except HeaderFormatError as err:
                if err.line_number is None:
                    err = HeaderFormatError(err.message, line_number=self._line_number)
                raise err from None
            except DorisRinexError as err:
                raise HeaderFormatError(
                    f"Invalid '{label}' record: {err.message}",
                    line_number=self._line_number,
                ) from err
            self._seen.add(label)

        self._finish()
        return self._header

    def _finish(self) -> None:
        for label in MANDATORY_HEADER_LABELS:
            if label not in self._seen:
                raise HeaderFormatError(f"Mandatory header record '{label}' missing")

        self._align_scale_factors()

        beacons = self._header.beacons
        if self._params.validate_time_ref_stations:
            beacons.validate_time_ref_stations()
        if self._header.num_stations is not None and self._header.num_stations != len(beacons):
            logger.warning(
                "Header declares %d stations but lists %d under '%s'",
                self._header.num_stations,
                len(beacons),
                LABEL_STATION_REFERENCE,
            )

        self._header.end_of_header = self._stream.tell()
        self._header.num_header_lines = self._line_number
        logger.debug(
            "Parsed DORIS RINEX header: %s, %d observables, %d beacons",
            self._header.satellite_name,
            len(self._header.obs_codes),
            len(beacons),
        )

    def _align_scale_factors(self) -> None:
        codes = self._header.obs_codes
        factors = [1] * len(codes)
        for factor, tokens in self._scale_entries:
            if tokens is None:
                factors = [factor] * len(codes)
                continue
            for token in tokens:
                try:
                    code = parse_code(token)
                    index = codes.index(code)
                except (DorisRinexError, ValueError):
                    raise HeaderFormatError(
                        f"Scale factor given for undeclared observation code {token!r}"
                    ) from None
                factors[index] = factor
        self._header.obs_scale_factors = factors

    def _read_continued_codes(
        self, tokens: List[str], count: int, label: str, columns: slice
    ) -> List[str]:
        while len(tokens) < count:
            nxt = self._readline()
            if nxt[HEADER_LABEL_SLICE].strip() != label:
                raise HeaderFormatError(
                    f"Expected {count} observation codes in '{label}', found {len(tokens)}",
                    line_number=self._line_number,
                )
            tokens.extend(nxt[columns].split())
        if len(tokens) > count:
            raise HeaderFormatError(
                f"Expected {count} observation codes in '{label}', found {len(tokens)}",
                line_number=self._line_number,
            )
        return tokens

    # -- record handlers ------------------------------------------------------

    def _version_type(self, line: str) -> None:
        self._header.version = _parse_float(line[0:9], LABEL_RINEX_VERSION_TYPE)
        if line[20] != OBSERVATION_FILE_TYPE:
            raise HeaderFormatError(f"Not an observation RINEX (file type {line[20]!r})")
        if line[40] != DORIS_SYSTEM_CHAR:
            raise HeaderFormatError(f"Not a DORIS RINEX (satellite system {line[40]!r})")
        if int(self._header.version) != 3:
            logger.warning("RINEX version %.2f; only 3.x is supported", self._header.version)

    def _satellite_name(self, line: str) -> None:
        self._header.satellite_name = line[0:60].strip()

    def _cospar_number(self, line: str) -> None:
        self._header.cospar_number = line[0:20].strip()

    def _receiver(self, line: str) -> None:
        self._header.receiver_chain = line[0:20].strip()
        self._header.receiver_type = line[20:40].strip()
        self._header.receiver_version = line[40:60].strip()

    def _antenna(self, line: str) -> None:
        self._header.antenna_number = line[0:20].strip()
        self._header.antenna_type = line[20:40].strip()

    def _approx_position(self, line: str) -> None:
        self._header.approx_position = _parse_xyz(line, LABEL_APPROX_POSITION_XYZ)

    def _center_of_mass(self, line: str) -> None:
        self._header.center_of_mass = _parse_xyz(line, LABEL_CENTER_OF_MASS_XYZ)

    def _obs_types(self, line: str) -> None:
        if line[0] != DORIS_SYSTEM_CHAR:
            raise HeaderFormatError(f"Unexpected satellite system {line[0]!r} in '{LABEL_SYS_NUM_OBS}'")
        num_types = _parse_int(line[3:6], LABEL_SYS_NUM_OBS)
        if num_types < 1:
            raise HeaderFormatError(f"No observation types declared in '{LABEL_SYS_NUM_OBS}'")
        tokens = self._read_continued_codes(
            line[7:60].split(), num_types, LABEL_SYS_NUM_OBS, slice(7, 60)
        )
        self._header.obs_codes = [parse_code(t) for t in tokens]

    def _scale_factor(self, line: str) -> None:
        if line[0] != DORIS_SYSTEM_CHAR:
            raise HeaderFormatError(f"Unexpected satellite system {line[0]!r} in '{LABEL_SYS_SCALE_FACTOR}'")
        factor = _parse_int(line[2:6], LABEL_SYS_SCALE_FACTOR)
        if factor < 1:
            raise HeaderFormatError(f"Invalid scale factor {factor}")
        if not line[8:10].strip():
            self._scale_entries.append((factor, None))
            return
        num_codes = _parse_int(line[8:10], LABEL_SYS_SCALE_FACTOR)
        tokens = self._read_continued_codes(
            line[10:60].split(), num_codes, LABEL_SYS_SCALE_FACTOR, slice(10, 60)
        )
        self._scale_entries.append((factor, tokens))

    def _time_of_first_obs(self, line: str) -> None:
        self._header.time_of_first_obs, self._header.time_system = _parse_header_time(
            line, LABEL_TIME_OF_FIRST_OBS
        )

    def _time_ref_stat_date(self, line: str) -> None:
        self._header.time_ref_stat_date, _ = _parse_header_time(line, LABEL_TIME_REF_STAT_DATE)

    def _l12_date_offset(self, line: str) -> None:
        self._header.l12_date_offset = _parse_float(line[1:60], LABEL_L2_L1_DATE_OFFSET)

    def _rcv_clock_offs_appl(self, line: str) -> None:
        value = line[0:6].strip()
        self._header.rcv_clock_offs_appl = bool(value) and _parse_int(value, LABEL_RCV_CLOCK_OFFS_APPL) == 1

    def _num_stations(self, line: str) -> None:
        self._header.num_stations = _parse_int(line[0:6], LABEL_NUM_STATIONS)

    def _station_reference(self, line: str) -> None:
        self._header.beacons.add_beacon(parse_beacon_line(line))

    def _time_ref_station(self, line: str) -> None:
        self._header.beacons.add_time_ref_station(parse_time_ref_station_line(line))


def parse_header(
    stream: TextIO, parameters: DorisRinexParameters | None = None
) -> DorisRinexHeader:
    """Parse the header of a DORIS observation RINEX file.

    Parameters
    ----------
    stream : TextIO
        Open text stream positioned at the start of the file.
    parameters : DorisRinexParameters | None
        Parsing options.  If ``None`` a default ``DorisRinexParameters``
        instance is used.

    Returns
    -------
    DorisRinexHeader
        The header metadata; ``stream`` is left at the first data record.

    Raises
    ------
    HeaderFormatError
        If a mandatory record is missing, a record is garbled or its label
        is not recognised.
    """

    params = parameters or DorisRinexParameters()
    return _HeaderParser(stream, params).parse()
