"""Error classification for DORIS RINEX reading.

Header problems surface as :class:`HeaderFormatError` when a
:class:`~utilities.rinex_obs_parser.DorisObsRinex` is constructed.  Problems
in the data section are subclasses of :class:`DataRecordError`; the reader
hands those back as values instead of raising them.
"""

from __future__ import annotations

from typing import Optional


class DorisRinexError(Exception):
    """Base class for every error raised while reading a DORIS RINEX file."""

    def __init__(self, message: str, *, line_number: Optional[int] = None):
        self.message = message
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class HeaderFormatError(DorisRinexError):
    """Missing or garbled header field; the file cannot be used."""


class ObservationCodeError(DorisRinexError, ValueError):
    """Invalid observation code construction."""


class UnknownObservationType(ObservationCodeError):
    pass


class InvalidFrequency(ObservationCodeError):
    pass


class DataRecordError(DorisRinexError):
    """Malformed content in the data section of the file."""


class RecordFormatError(DataRecordError):
    """Unexpected record marker, or a record ending before its declared counts."""


class NumericParseError(DataRecordError):
    """A non-blank field failed numeric conversion."""


class EndOfInput:
    """Outcome returned once the data section is exhausted."""

    _instance: Optional["EndOfInput"] = None

    def __new__(cls) -> "EndOfInput":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "END_OF_INPUT"


END_OF_INPUT = EndOfInput()
