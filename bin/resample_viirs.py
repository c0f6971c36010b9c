"""Resample VIIRS M-band SDR and geolocation files to remove the bow-tie effect.

Each granule is processed in steps: every band, then the terrain-corrected
geolocation, and, with sorted output, a final step that sorts the ellipsoid
geolocation in place. Every step before the last reads the unsorted
geolocation.

Examples
--------
% python bin/resample_viirs.py band GMODO_npp_d20140101_t0000000.h5 SVM15_npp_d20140101_t0000000.h5 --band 15

% python bin/resample_viirs.py band GMODO_npp_d20140101_t0000000.h5 SVM16_npp_d20140101_t0000000.h5 --band 16 \
    --sorted --config resample.json -v

% python bin/resample_viirs.py geo GMODO_npp_d20140101_t0000000.h5 GMTCO_npp_d20140101_t0000000.h5 --sorted

% python bin/resample_viirs.py sort-geo GMODO_npp_d20140101_t0000000.h5

% python bin/resample_viirs.py reorder ACSPO_V2.41_NPP_VIIRS_2014-01-01_0000-0010_20140101.000000.nc \
    --fields sst l2p_flags --lat-field lat

"""

import argparse
import logging

from bowtie.config import ResampleConfig
from bowtie.sdr import runners
from bowtie.utils import enable_logging


def _run_band(config, geo_file, band_file, band):
    runners.resample_band_file(band_file, geo_file, band, config)


def _run_geo(config, gmodo_file, gmtco_file):
    runners.resample_geolocation_file(gmodo_file, gmtco_file, config)


def _run_sort_geo(config, geo_file):
    runners.sort_geolocation_file(geo_file, config)


def _run_reorder(config, path, fields, lat_field):
    runners.reorder_file(path, fields, lat_field, config)


def build_parser():
    """Command line parser, one sub-command per processing step."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c", "--config", type=str, default=argparse.SUPPRESS, help="Resampling options file (json)."
    )
    common.add_argument(
        "-l", "--log_dir", type=str, default=argparse.SUPPRESS, help="Directory to save logging output in."
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_const",
        const="debug",
        dest="log_level",
        default=argparse.SUPPRESS,
        help='Set log reporting level to "debug" (default="info").',
    )
    sorted_kwargs = dict(
        action="store_true",
        dest="sorted_output",
        default=argparse.SUPPRESS,
        help="Keep the latitude-sorted row order (default=False). Run `sort-geo` once all files are done.",
    )

    parser = argparse.ArgumentParser(description="Resample VIIRS SDR files in place.")
    commands = parser.add_subparsers(title="commands", dest="command", required=True)

    band = commands.add_parser("band", parents=[common], help="Resample an M-band SDR file.")
    band.add_argument("geo_file", type=str, help="Geolocation (GMODO) file matching the band file.")
    band.add_argument("band_file", type=str, help="M-band SDR file to resample (modified in place).")
    band.add_argument("-b", "--band", type=int, required=True, help="M-band number (1-16).")
    band.add_argument("-s", "--sorted", **sorted_kwargs)
    band.set_defaults(func=_run_band)

    geo = commands.add_parser("geo", parents=[common], help="Resample a terrain-corrected geolocation file.")
    geo.add_argument("gmodo_file", type=str, help="Ellipsoid geolocation (GMODO) file.")
    geo.add_argument("gmtco_file", type=str, help="Terrain-corrected geolocation (GMTCO) file (modified in place).")
    geo.add_argument("-s", "--sorted", **sorted_kwargs)
    geo.set_defaults(func=_run_geo)

    sort_geo = commands.add_parser(
        "sort-geo", parents=[common], help="Sort a geolocation file in place, after its bands are resampled."
    )
    sort_geo.add_argument("geo_file", type=str, help="Geolocation (GMODO) file (modified in place).")
    sort_geo.set_defaults(func=_run_sort_geo)

    reorder = commands.add_parser(
        "reorder", parents=[common], help="Sort the rows of fields of a file (e.g., ACSPO) without resampling."
    )
    reorder.add_argument("path", type=str, help="File to reorder (modified in place).")
    reorder.add_argument("-f", "--fields", type=str, nargs="+", required=True, help="Fields to reorder.")
    reorder.add_argument(
        "--lat-field", type=str, dest="lat_field", default="latitude", help="Latitude field (default=latitude)."
    )
    reorder.set_defaults(func=_run_reorder)
    return parser


def cmd_line_call(argv=None):
    """Method to process command line arguments (`python <file>.py --help`)."""
    parser = build_parser()
    kwargs = vars(parser.parse_args(argv))
    orig_kwargs = str({key: value for key, value in kwargs.items() if key != "func"})

    # Start logging to the console (stdout), and optionally a file.
    log_level = kwargs.pop("log_level", "info")
    logger = enable_logging(log_level=log_level, log_file=kwargs.pop("log_dir", False))
    logger.debug("Supplied arguments: %s", orig_kwargs)

    func = kwargs.pop("func")
    kwargs.pop("command")
    try:
        config_file = kwargs.pop("config", None)
        config = ResampleConfig() if config_file is None else ResampleConfig.from_json(config_file)
        if kwargs.pop("sorted_output", False):
            config = ResampleConfig.from_dict({**config.to_dict(), "sorted_output": True})

        func(config, **kwargs)
    except Exception:
        logging.exception("An exception occurred:")
        parser.exit(status=1, message="Script failed with errors! Exiting early...\n")


if __name__ == "__main__":
    cmd_line_call()
