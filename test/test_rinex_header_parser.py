import io
import os
import sys

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from constants.doris_constants import ObservationType
from doris_samples import epoch_line, header_line, make_header
from doris_utils.errors import HeaderFormatError, InvalidFrequency, UnknownObservationType
from doris_utils.observation_codes import ObservationCode, parse_code
from utilities.parameters import DorisRinexParameters
from utilities.rinex_header_parser import DorisRinexHeader, parse_header, parse_seconds_ns


def _parse(text, parameters=None):
    return parse_header(io.StringIO(text), parameters)


def test_header_fields():
    header = _parse(make_header())

    assert header.version == pytest.approx(3.0)
    assert header.satellite_name == "JASON-3"
    assert header.cospar_number == "2016-002A"
    assert header.receiver_chain == "CHAIN1"
    assert header.receiver_type == "DGXX"
    assert header.receiver_version == "1.00"
    assert header.antenna_number == "DORIS"
    assert header.antenna_type == "STAREC"
    np.testing.assert_allclose(header.approx_position, [1.2, -0.53, 1.33])
    np.testing.assert_allclose(header.center_of_mass, [1.0, 0.0, 0.25])
    assert header.time_of_first_obs == pd.Timestamp("2020-01-01 00:00:32")
    assert header.time_system == "TAI"
    assert header.time_ref_stat_date == pd.Timestamp("2020-01-01")
    assert header.l12_date_offset == pytest.approx(2.5)
    assert header.rcv_clock_offs_appl is True
    assert header.num_stations == 2


def test_obs_codes_and_default_scale_factors():
    header = _parse(make_header(codes=("L1", "L2", "C1", "F", "P")))

    assert header.obs_codes == [
        ObservationCode(ObservationType.PHASE, 1),
        ObservationCode(ObservationType.PHASE, 2),
        ObservationCode(ObservationType.PSEUDORANGE, 1),
        ObservationCode(ObservationType.FREQUENCY_OFFSET),
        ObservationCode(ObservationType.GROUND_PRESSURE),
    ]
    assert header.obs_scale_factors == [1, 1, 1, 1, 1]
    assert header.obs_index(parse_code("C1")) == 2
    with pytest.raises(KeyError):
        header.obs_index(parse_code("W1"))


def test_scale_factors_are_aligned_to_codes():
    header = _parse(
        make_header(
            codes=("L1", "L2", "C1", "C2", "W1"),
            scale_factors=[(1000, ["C2", "L1"]), (10, ["W1"])],
        )
    )
    assert header.obs_scale_factors == [1000, 1, 1, 1000, 10]
    assert len(header.obs_scale_factors) == len(header.obs_codes)


def test_scale_factor_for_all_codes():
    header = _parse(make_header(scale_factors=[(100, [])]))
    assert header.obs_scale_factors == [100, 100, 100]


def test_scale_factor_for_undeclared_code():
    with pytest.raises(HeaderFormatError):
        _parse(make_header(scale_factors=[(10, ["W2"])]))


@pytest.mark.parametrize(
    "num_codes, lines",
    [(1, 1), (3, 1), (5, 1), (6, 2), (10, 2), (11, 3), (15, 3), (16, 4)],
)
def test_lines_per_beacon(num_codes, lines):
    header = DorisRinexHeader(obs_codes=[parse_code("L1")] * num_codes)
    assert header.lines_per_beacon == lines


def test_beacons():
    header = _parse(make_header())

    assert len(header.beacons) == 2
    ajaccio = header.beacons.get("02")
    assert ajaccio.station_id == "AJAB"
    assert ajaccio.name == "AJACCIO"
    assert ajaccio.domes == "10077S002"
    assert ajaccio.generation == 3
    assert ajaccio.shift_factor == -2
    assert [s.code for s in header.time_ref_stations] == ["01"]
    assert header.time_ref_stations[0].bias_us == pytest.approx(-4.823)
    assert header.time_ref_stations[0].shift == pytest.approx(43.19)


def test_stream_left_at_first_record():
    first_epoch = epoch_line()
    stream = io.StringIO(make_header() + first_epoch)
    header = parse_header(stream)

    assert stream.readline() == first_epoch
    stream.seek(header.end_of_header)
    assert stream.readline() == first_epoch
    assert header.num_header_lines == make_header().count("\n")


def test_missing_mandatory_record():
    text = "".join(
        line + "\n"
        for line in make_header().splitlines()
        if not line.rstrip().endswith("SATELLITE NAME")
    )
    with pytest.raises(HeaderFormatError, match="SATELLITE NAME"):
        _parse(text)


def test_missing_end_of_header():
    text = make_header().replace("END OF HEADER", "COMMENT")
    with pytest.raises(HeaderFormatError):
        _parse(text)


def test_unrecognized_label():
    text = make_header(extra=[header_line("whatever", "NOT A LABEL")])
    with pytest.raises(HeaderFormatError, match="NOT A LABEL"):
        _parse(text)


def test_ignored_labels_from_parameters():
    text = make_header(extra=[header_line("    30.000", "INTERVAL")])
    params = DorisRinexParameters(ignored_header_labels=frozenset({"INTERVAL"}))
    header = _parse(text, params)
    assert header.satellite_name == "JASON-3"


def test_invalid_frequency_in_obs_types():
    with pytest.raises(HeaderFormatError) as excinfo:
        _parse(make_header(codes=("L1", "L3")))
    assert isinstance(excinfo.value.__cause__, InvalidFrequency)
    assert excinfo.value.line_number is not None


def test_unknown_obs_type():
    with pytest.raises(HeaderFormatError) as excinfo:
        _parse(make_header(codes=("L1", "S1")))
    assert isinstance(excinfo.value.__cause__, UnknownObservationType)


def test_not_a_doris_file():
    text = make_header().replace("O                   D", "N                   D", 1)
    with pytest.raises(HeaderFormatError, match="observation"):
        _parse(text)


def test_header_line_too_long():
    text = make_header(extra=["x" * 85 + "\n"])
    with pytest.raises(HeaderFormatError):
        _parse(text)


def test_time_ref_station_without_beacon():
    text = make_header(time_ref=(("09", 1.0, 2.0),))
    with pytest.raises(HeaderFormatError, match="D09"):
        _parse(text)

    params = DorisRinexParameters(validate_time_ref_stations=False)
    header = _parse(text, params)
    assert header.time_ref_stations[0].code == "09"


def test_parse_seconds_ns():
    assert parse_seconds_ns(" 53.279947800") == 53_279_947_800
    assert parse_seconds_ns("   32.0000000") == 32_000_000_000
    assert parse_seconds_ns("7") == 7_000_000_000
    with pytest.raises(ValueError):
        parse_seconds_ns("  ")
    with pytest.raises(ValueError):
        parse_seconds_ns("1.2e3")
    with pytest.raises(ValueError):
        parse_seconds_ns("61.000000000")
    assert parse_seconds_ns("60.999999999") == 60_999_999_999


@pytest.mark.parametrize("seconds", ["   75.0000000", "9999999999999"])
def test_time_of_first_obs_seconds_out_of_range(seconds):
    text = make_header().replace("   32.0000000", seconds, 1)
    with pytest.raises(HeaderFormatError, match="TIME OF FIRST OBS"):
        _parse(text)
