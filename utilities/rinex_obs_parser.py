"""DORIS RINEX observation file reader.

The header is parsed once, when a :class:`DorisObsRinex` is created; the
data section is then decoded one epoch at a time.  Each epoch is a record
line starting with ``>`` followed, for every beacon observed at that epoch,
by ``lines_per_beacon`` record lines holding up to five observation slots::

    > 2020 01 01 01 41 53.279947800  0  2       -4.432841287 0
    D01  -2484023.815 7   -466548.218 7 ...
    D02 ...

``DorisObsRinex.next``
    Returns the next :class:`~doris_utils.doris_dataclass.DataBlock`,
    :data:`~doris_utils.errors.END_OF_INPUT` once the file is exhausted, or
    the :class:`~doris_utils.errors.DataRecordError` describing why the
    file could not be read further.  Terminal outcomes repeat on every
    later call.

Iterating over a ``DorisObsRinex`` yields the data blocks and raises the
error instead.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Union

import pandas as pd

from constants.doris_constants import (
    BEACON_RECORD_MARKER,
    EPOCH_RECORD_MARKER,
    MAX_OBS_PER_DATA_LINE,
    MAX_RECORD_CHARS,
    OBS_FIELD_WIDTH,
    OBS_FIRST_COLUMN,
    OBS_VALUE_WIDTH,
)
from doris_utils.doris_dataclass import (
    Beacon,
    BeaconObservations,
    DataBlock,
    RinexDataRecordHeader,
    RinexObservationValue,
)
from doris_utils.errors import (
    END_OF_INPUT,
    DataRecordError,
    EndOfInput,
    NumericParseError,
    RecordFormatError,
)
from utilities.parameters import DorisRinexParameters
from utilities.rinex_header_parser import (
    DorisRinexHeader,
    parse_header,
    parse_seconds_ns,
)

logger = logging.getLogger(__name__)

ReadOutcome = Union[DataBlock, EndOfInput, DataRecordError]


class ReaderState(Enum):
    AT_EPOCH_HEADER = auto()
    PARSING_BEACON_GROUP = auto()
    END = auto()
    FAILED = auto()


def _parse_epoch_int(line: str, columns: slice, name: str, line_number: int) -> int:
    try:
        return int(line[columns])
    except ValueError:
        raise NumericParseError(
            f"Failed resolving {name} from {line[columns]!r}", line_number=line_number
        ) from None


def parse_epoch_line(line: str, line_number: Optional[int] = None) -> RinexDataRecordHeader:
    """Parse an epoch record line.

    Column layout (0-indexed)::

        [0]      '>'
        [2:6]    year
        [6:18]   month, day, hour, minute  4(1X,I2.2)
        [18:31]  seconds                   F13.9
        [31:34]  epoch flag                2X,I1
        [34:37]  number of beacons         I3
        [37:43]  reserved
        [43:56]  receiver clock offset [s] F13.9, optional
        [56:59]  clock offset flag         1X,I1,1X; 1 if extrapolated

    Parameters
    ----------
    line : str
        The record line, without trailing newline.
    line_number : int, optional
        Line number used in error messages.

    Returns
    -------
    RinexDataRecordHeader
        The decoded epoch header; a blank clock offset field is ``None``.
    """

    if not line.startswith(EPOCH_RECORD_MARKER):
        raise RecordFormatError(
            f"Expected epoch record starting with '{EPOCH_RECORD_MARKER}', got {line[:10]!r}",
            line_number=line_number,
        )
    line = line.ljust(59)

    try:
        year = int(line[2:6])
        month, day, hour, minute = (int(line[i + 1 : i + 3]) for i in range(6, 18, 3))
        seconds_ns = parse_seconds_ns(line[18:31])
        epoch = pd.Timestamp(year=year, month=month, day=day, hour=hour, minute=minute)
        epoch += pd.Timedelta(seconds_ns, unit="ns")
    except (ValueError, OverflowError) as err:
        raise NumericParseError(
            f"Failed resolving date of epoch record: {err}", line_number=line_number
        ) from None

    flag = _parse_epoch_int(line, slice(31, 34), "epoch flag", line_number)
    num_stations = _parse_epoch_int(line, slice(34, 37), "number of stations", line_number)
    if num_stations < 0:
        raise NumericParseError(
            f"Negative number of stations {num_stations}", line_number=line_number
        )

    clock_offset = None
    if line[43:56].strip():
        try:
            clock_offset = float(line[43:56])
        except ValueError:
            raise NumericParseError(
                f"Failed resolving clock offset from {line[43:56]!r}",
                line_number=line_number,
            ) from None

    clock_flag = 0
    if line[56:59].strip():
        clock_flag = _parse_epoch_int(line, slice(56, 59), "clock offset flag", line_number)

    return RinexDataRecordHeader(
        epoch=epoch,
        flag=flag,
        num_stations=num_stations,
        clock_offset=clock_offset,
        clock_flag=clock_flag,
    )


class DataBlockReader:
    """Decodes the data section of a DORIS RINEX file, one epoch per call.

    The reader does not resynchronise: once a record is found malformed it
    stays in the ``FAILED`` state and keeps returning the same error.
    """

    def __init__(
        self,
        stream: TextIO,
        header: DorisRinexHeader,
        *,
        validate_beacon_ids: bool = True,
    ):
        self._stream = stream
        self._header = header
        self._validate_beacon_ids = validate_beacon_ids
        self._line_number = header.num_header_lines
        self._terminal: Optional[Union[EndOfInput, DataRecordError]] = None
        self.state = ReaderState.AT_EPOCH_HEADER
        # Cursor inside the beacon group being parsed
        self.beacon_index = 0
        self.obs_index = 0
        self.line_index = 0

    @property
    def line_number(self) -> int:
        """Number of the last line read from the file."""
        return self._line_number

    def read_next(self) -> ReadOutcome:
        if self._terminal is not None:
            return self._terminal

        try:
            block = self._read_block()
        except DataRecordError as err:
            logger.error("Failed reading DORIS RINEX data block: %s", err)
            self.state = ReaderState.FAILED
            self._terminal = err
            return err

        if block is None:
            self.state = ReaderState.END
            self._terminal = END_OF_INPUT
            return END_OF_INPUT
        return block

    def _readline(self) -> Optional[str]:
        try:
            raw = self._stream.readline()
        except UnicodeDecodeError as err:
            raise RecordFormatError(
                f"Undecodable record line: {err}", line_number=self._line_number + 1
            ) from None
        if not raw:
            return None
        self._line_number += 1
        line = raw.rstrip("\r\n")
        if len(line.rstrip()) >= MAX_RECORD_CHARS:
            raise RecordFormatError(
                f"Record line longer than {MAX_RECORD_CHARS - 1} characters",
                line_number=self._line_number,
            )
        return line

    def _read_block(self) -> Optional[DataBlock]:
        line = self._readline()
        if line is None:
            return None

        record_header = parse_epoch_line(line, self._line_number)
        self.state = ReaderState.PARSING_BEACON_GROUP
        beacon_obs = []
        for beacon_index in range(record_header.num_stations):
            self.beacon_index = beacon_index
            beacon_obs.append(self._read_beacon_group())
        self.state = ReaderState.AT_EPOCH_HEADER
        return DataBlock(header=record_header, beacon_obs=tuple(beacon_obs))

    def _read_beacon_group(self) -> BeaconObservations:
        codes = self._header.obs_codes
        scale_factors = self._header.obs_scale_factors
        values: List[RinexObservationValue] = []
        beacon_id = ""
        line = ""

        for obs_index in range(len(codes)):
            self.obs_index = obs_index
            slot = obs_index % MAX_OBS_PER_DATA_LINE
            if slot == 0:
                self.line_index = obs_index // MAX_OBS_PER_DATA_LINE
                line = self._next_group_line()
                if self.line_index == 0:
                    beacon_id = self._beacon_id(line)
                elif line[:1] in (BEACON_RECORD_MARKER, EPOCH_RECORD_MARKER):
                    raise RecordFormatError(
                        f"Expected continuation line {self.line_index + 1} of beacon "
                        f"D{beacon_id}, got {line[:3]!r}",
                        line_number=self._line_number,
                    )

            start = OBS_FIRST_COLUMN + slot * OBS_FIELD_WIDTH
            field_str = line[start : start + OBS_VALUE_WIDTH]
            flag1 = line[start + OBS_VALUE_WIDTH]
            flag2 = line[start + OBS_VALUE_WIDTH + 1]

            if not field_str.strip():
                value = None
            else:
                try:
                    value = float(field_str) / scale_factors[obs_index]
                except ValueError:
                    raise NumericParseError(
                        f"Failed resolving {codes[obs_index]} of beacon "
                        f"{beacon_id} from {field_str!r}",
                        line_number=self._line_number,
                    ) from None
            values.append(RinexObservationValue(value, flag1, flag2))

        return BeaconObservations(beacon_id=beacon_id, values=tuple(values))

    def _next_group_line(self) -> str:
        line = self._readline()
        if line is None:
            raise RecordFormatError(
                f"Unexpected end of file in data record of beacon "
                f"{self.beacon_index + 1}, line {self.line_index + 1}",
                line_number=self._line_number,
            )
        return line.ljust(MAX_RECORD_CHARS)

    def _beacon_id(self, line: str) -> str:
        if not line.startswith(BEACON_RECORD_MARKER):
            raise RecordFormatError(
                f"Expected beacon record starting with '{BEACON_RECORD_MARKER}', "
                f"got {line[:3]!r}",
                line_number=self._line_number,
            )
        beacon_id = line[1:3]
        if self._validate_beacon_ids and beacon_id not in self._header.beacons:
            raise RecordFormatError(
                f"Beacon D{beacon_id} not listed under STATION REFERENCE",
                line_number=self._line_number,
            )
        return beacon_id


class DorisObsRinex:
    """A DORIS observation RINEX file opened for reading.

    The object owns the open file and its read position; it can be handed
    over, but not copied.

    Parameters
    ----------
    file_path : str | Path
        Path to the DORIS RINEX observation file.
    parameters : DorisRinexParameters | None
        Parsing options.  If ``None`` a default ``DorisRinexParameters``
        instance is used.

    Raises
    ------
    HeaderFormatError
        If the header cannot be parsed; the file is closed again.
    """

    def __init__(
        self,
        file_path: str | Path,
        *,
        parameters: DorisRinexParameters | None = None,
    ):
        self.file_path = str(file_path)
        self.parameters = parameters or DorisRinexParameters()

        stream = open(self.file_path, "r", encoding=self.parameters.encoding)
        try:
            self.header = parse_header(stream, self.parameters)
        except Exception:
            stream.close()
            logger.error("Failed reading RINEX header of %s", self.file_path)
            raise

        self._stream = stream
        self._reader = DataBlockReader(
            stream,
            self.header,
            validate_beacon_ids=self.parameters.validate_beacon_ids,
        )

    @property
    def lines_per_beacon(self) -> int:
        return self.header.lines_per_beacon

    @property
    def state(self) -> ReaderState:
        return self._reader.state

    @property
    def has_more(self) -> bool:
        """False once the end of the file or a malformed record was reached."""
        return self._reader.state not in (ReaderState.END, ReaderState.FAILED)

    def beacon(self, code: str) -> Optional[Beacon]:
        return self.header.beacons.get(code)

    def next(self) -> ReadOutcome:
        """Read the next data block.

        Returns
        -------
        DataBlock | EndOfInput | DataRecordError
            The next epoch, ``END_OF_INPUT`` when the data section is
            exhausted, or the error that stopped the reader.
        """

        if self._stream.closed and self.has_more:
            raise ValueError(f"{self.file_path} is closed")
        return self._reader.read_next()

    def __iter__(self) -> Iterator[DataBlock]:
        while True:
            outcome = self.next()
            if isinstance(outcome, DataBlock):
                yield outcome
            elif isinstance(outcome, DataRecordError):
                raise outcome
            else:
                return

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> "DorisObsRinex":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __copy__(self):
        raise TypeError("DorisObsRinex owns its file stream and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("DorisObsRinex owns its file stream and cannot be copied")

    def __getstate__(self):
        raise TypeError("DorisObsRinex owns its file stream and cannot be pickled")

    def __repr__(self) -> str:
        return f"DorisObsRinex({self.file_path!r}, {self.header.satellite_name})"
