from enum import Enum, auto


class ObservationType(Enum):
    """DORIS observation types (RINEX DORIS 3.0, Issue 1.7)."""

    PHASE = auto()  # L
    PSEUDORANGE = auto()  # C
    POWER_LEVEL = auto()  # W, power level received at each frequency [dBm]
    FREQUENCY_OFFSET = auto()  # F, (f - f0) / f0 of the receiver oscillator [1e-11]
    GROUND_PRESSURE = auto()  # P, ground pressure at the station [mBar]
    GROUND_TEMPERATURE = auto()  # T, ground temperature at the station [deg C]
    GROUND_HUMIDITY = auto()  # H, ground humidity at the station [%]


# S1 (2 GHz) and U2 (400 MHz)
DORIS_FREQUENCIES = (1, 2)

FREQUENCY_OBS_TYPES = frozenset(
    {
        ObservationType.PHASE,
        ObservationType.PSEUDORANGE,
        ObservationType.POWER_LEVEL,
    }
)

# No header line can have more than 80 chars
MAX_HEADER_CHARS = 81
# No record line can have more than 123 chars
MAX_RECORD_CHARS = 124

# Seconds of a minute, leap second included
MAX_SECONDS_NS = 61 * 1_000_000_000

MAX_OBS_PER_DATA_LINE = 5
OBS_FIELD_WIDTH = 16
OBS_VALUE_WIDTH = 14
OBS_FIRST_COLUMN = 3

EPOCH_RECORD_MARKER = ">"
BEACON_RECORD_MARKER = "D"
DORIS_SYSTEM_CHAR = "D"
OBSERVATION_FILE_TYPE = "O"

HEADER_LABEL_SLICE = slice(60, 80)

LABEL_END_OF_HEADER = "END OF HEADER"
LABEL_RINEX_VERSION_TYPE = "RINEX VERSION / TYPE"
LABEL_PGM_RUN_BY_DATE = "PGM / RUN BY / DATE"
LABEL_COMMENT = "COMMENT"
LABEL_OBSERVER_AGENCY = "OBSERVER / AGENCY"
LABEL_SATELLITE_NAME = "SATELLITE NAME"
LABEL_COSPAR_NUMBER = "COSPAR NUMBER"
LABEL_REC_TYPE_VERS = "REC # / TYPE / VERS"
LABEL_ANT_TYPE = "ANT # / TYPE"
LABEL_APPROX_POSITION_XYZ = "APPROX POSITION XYZ"
LABEL_CENTER_OF_MASS_XYZ = "CENTER OF MASS: XYZ"
LABEL_SYS_NUM_OBS = "SYS / # / OBS TYPES"
LABEL_RCV_CLOCK_OFFS_APPL = "RCV CLOCK OFFS APPL"
LABEL_TIME_OF_FIRST_OBS = "TIME OF FIRST OBS"
LABEL_TIME_OF_LAST_OBS = "TIME OF LAST OBS"
LABEL_SYS_SCALE_FACTOR = "SYS / SCALE FACTOR"
LABEL_L2_L1_DATE_OFFSET = "L2 / L1 DATE OFFSET"
LABEL_NUM_STATIONS = "# OF STATIONS"
LABEL_STATION_REFERENCE = "STATION REFERENCE"
LABEL_TIME_REF_STAT_DATE = "TIME REF STAT DATE"
LABEL_TIME_REF_STATION = "TIME REF STATION"

MANDATORY_HEADER_LABELS = (
    LABEL_RINEX_VERSION_TYPE,
    LABEL_SATELLITE_NAME,
    LABEL_SYS_NUM_OBS,
    LABEL_TIME_OF_FIRST_OBS,
)

# Labels which are recognised but carry nothing the reader keeps
IGNORED_HEADER_LABELS = frozenset(
    {
        LABEL_PGM_RUN_BY_DATE,
        LABEL_COMMENT,
        LABEL_OBSERVER_AGENCY,
        LABEL_TIME_OF_LAST_OBS,
    }
)
