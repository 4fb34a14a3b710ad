"""Observation types and codes of DORIS RINEX files.

An observation code is an observation type plus, for phase, pseudorange and
power level, the DORIS frequency it refers to:

* ``1`` for the S1 frequency (2 GHz)
* ``2`` for the U2 frequency (400 MHz)

Any other observation type carries no frequency and its frequency is stored
as ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants.doris_constants import (
    DORIS_FREQUENCIES,
    FREQUENCY_OBS_TYPES,
    ObservationType,
)
from doris_utils.errors import InvalidFrequency, UnknownObservationType


_TYPE_TO_CHAR = {
    ObservationType.PHASE: "L",
    ObservationType.PSEUDORANGE: "C",
    ObservationType.POWER_LEVEL: "W",
    ObservationType.FREQUENCY_OFFSET: "F",
    ObservationType.GROUND_PRESSURE: "P",
    ObservationType.GROUND_TEMPERATURE: "T",
    ObservationType.GROUND_HUMIDITY: "H",
}

_CHAR_TO_TYPE = {char: obs_type for obs_type, char in _TYPE_TO_CHAR.items()}


def type_to_char(obs_type: ObservationType) -> str:
    """Return the RINEX letter of an observation type."""

    try:
        return _TYPE_TO_CHAR[obs_type]
    except (KeyError, TypeError):
        raise UnknownObservationType(
            f"Cannot translate {obs_type!r} to a RINEX observation letter"
        ) from None


def char_to_type(char: str) -> ObservationType:
    """Return the observation type denoted by a RINEX letter."""

    try:
        return _CHAR_TO_TYPE[char]
    except (KeyError, TypeError):
        raise UnknownObservationType(
            f"Cannot translate {char!r} to a DORIS observation type"
        ) from None


def has_frequency(obs_type: ObservationType) -> bool:
    return obs_type in FREQUENCY_OBS_TYPES


@dataclass(frozen=True)
class ObservationCode:
    """An observation type and (when applicable) its frequency."""

    obs_type: ObservationType
    frequency: int = 0

    def __post_init__(self) -> None:
        if self.obs_type not in _TYPE_TO_CHAR:
            raise UnknownObservationType(
                f"Unknown DORIS observation type {self.obs_type!r}"
            )
        if has_frequency(self.obs_type):
            if self.frequency not in DORIS_FREQUENCIES:
                raise InvalidFrequency(
                    f"Invalid frequency {self.frequency!r} for observation "
                    f"type {self.obs_type.name}"
                )
        else:
            object.__setattr__(self, "frequency", 0)

    @property
    def has_frequency(self) -> bool:
        return has_frequency(self.obs_type)

    def __str__(self) -> str:
        return format_code(self)

    def __repr__(self) -> str:
        return f"ObservationCode({format_code(self)})"


def format_code(code: ObservationCode) -> str:
    """Format an observation code as its 2-character RINEX form, e.g. ``L1``."""

    return f"{type_to_char(code.obs_type)}{code.frequency:d}"


def parse_code(token: str) -> ObservationCode:
    """Build an observation code from a RINEX header token.

    Parameters
    ----------
    token : str
        One to three characters, e.g. ``"L1"``, ``"C2"``, ``"F"`` or ``"P "``.

    Returns
    -------
    ObservationCode
        The decoded code; types without a frequency ignore the digit.
    """

    token = token.strip()
    if not token:
        raise UnknownObservationType("Empty observation code")

    obs_type = char_to_type(token[0])
    if not has_frequency(obs_type):
        return ObservationCode(obs_type)

    digits = token[1:]
    if not digits.isdigit():
        raise InvalidFrequency(
            f"Observation code {token!r} lacks a valid frequency number"
        )
    return ObservationCode(obs_type, int(digits))
