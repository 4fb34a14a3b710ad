from dataclasses import dataclass, field


@dataclass
class DorisRinexParameters:
    """Parameters controlling DORIS RINEX observation parsing."""

    encoding: str = "latin-1"
    # Reject data records whose beacon is not listed under STATION REFERENCE
    validate_beacon_ids: bool = True
    # Reject TIME REF STATION entries whose beacon is not listed under STATION REFERENCE
    validate_time_ref_stations: bool = True
    # Extra header labels to skip without failing
    ignored_header_labels: frozenset[str] = field(default_factory=frozenset)
