import logging
import sys

from doris_utils.doris_dataclass import DataBlock
from doris_utils.errors import DorisRinexError, HeaderFormatError
from utilities.rinex_obs_parser import DorisObsRinex


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(f"Usage: {argv[0]} [DORIS RINEX]", file=sys.stderr)
        return 1

    try:
        rnx = DorisObsRinex(argv[1])
    except (OSError, HeaderFormatError) as err:
        print(f"Failed opening {argv[1]}: {err}", file=sys.stderr)
        return 1

    epochs = 0
    with rnx:
        while True:
            outcome = rnx.next()
            if not isinstance(outcome, DataBlock):
                break
            epochs += 1

    if isinstance(outcome, DorisRinexError):
        print(f"Failed reading {argv[1]}: {outcome}", file=sys.stderr)
        return 1

    print(
        f"{rnx.header.satellite_name}: {len(rnx.header.obs_codes)} observables, "
        f"{len(rnx.header.beacons)} beacons"
    )
    print(f"Num of epochs read: {epochs}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(main(sys.argv))
