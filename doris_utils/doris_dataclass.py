from dataclasses import dataclass
from typing import Optional, Tuple

import pandas as pd


@dataclass(frozen=True)
class Beacon:
    """A ground beacon listed under ``STATION REFERENCE``."""

    code: str  # internal 2-character number used in data records
    station_id: str  # 4-character station code
    name: str
    domes: str
    generation: int  # 1, 2 or 3 for beacon 1.0, 2.0 or 3.0
    shift_factor: int  # frequency shift factor K

    def __repr__(self) -> str:
        return f"Beacon D{self.code} {self.station_id} ({self.name})"


@dataclass(frozen=True)
class TimeReferenceStation:
    """A beacon used as time reference (``TIME REF STATION``)."""

    code: str
    bias_us: float  # bias vs. TAI reference time [1e-6 s]
    shift: float  # time beacon reference shift [1e-14 s/s]


@dataclass(frozen=True)
class RinexDataRecordHeader:
    """Fields of an epoch record line (the one starting with ``>``).

    The epoch refers to the L1 (2 GHz) sampling; the L2 epoch follows from
    the header's ``L2 / L1 DATE OFFSET``.
    """

    epoch: pd.Timestamp
    flag: int  # 0: OK, 1: power failure since previous epoch, >1: special event
    num_stations: int
    clock_offset: Optional[float] = None  # receiver clock offset [s]
    clock_flag: int = 0  # 1 if the clock offset is extrapolated

    @property
    def has_clock_offset(self) -> bool:
        return self.clock_offset is not None

    def apply_clock_offset(self) -> pd.Timestamp:
        """Return the epoch corrected by the receiver clock offset (if any)."""

        if self.clock_offset is None:
            return self.epoch
        return self.epoch + pd.Timedelta(
            int(round(self.clock_offset * 1e9)), unit="ns"
        )


@dataclass(frozen=True)
class RinexObservationValue:
    """A descaled observation value and its m1/m2 flags."""

    value: Optional[float]
    flag1: str = " "
    flag2: str = " "

    @property
    def is_missing(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class BeaconObservations:
    """Observations of one beacon at one epoch, in header code order."""

    beacon_id: str
    values: Tuple[RinexObservationValue, ...]

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> RinexObservationValue:
        return self.values[index]


@dataclass(frozen=True)
class DataBlock:
    """One epoch of a DORIS RINEX file."""

    header: RinexDataRecordHeader
    beacon_obs: Tuple[BeaconObservations, ...]

    @property
    def epoch(self) -> pd.Timestamp:
        return self.header.epoch

    def beacon(self, beacon_id: str) -> Optional[BeaconObservations]:
        for obs in self.beacon_obs:
            if obs.beacon_id == beacon_id:
                return obs
        return None

    def __repr__(self) -> str:
        return f"DataBlock {self.header.epoch} ({len(self.beacon_obs)} beacons)"
