"""Logging helpers shared by the resampling modules and scripts."""

import datetime
import functools
import logging
import logging.config
import typing
from io import StringIO
from pathlib import Path

import numpy as np
import pandas as pd
import xarray as xr

logger = logging.getLogger(__name__)

# Third-party loggers that are only useful when something goes wrong.
QUIET_LOGGERS = ("h5py", "xarray")

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] %(message)s"
DETAILED_LOG_FORMAT = "[%(asctime)s.%(msecs)03d %(name)s.%(funcName)s:%(lineno)i %(levelname)5.5s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _log_output(_logger: logging.Logger, output, max_rows: int, label: str = None):
    """Debug-log a returned grid, table or dataset."""
    label = output.__class__.__name__ if label is None else label

    if isinstance(output, pd.DataFrame):
        if pd.get_option("display.width") == 80:
            pd.set_option("display.width", 140)
        _logger.debug("%s%s:\n %s", label, output.shape, output.to_string(max_rows=max_rows))
        if not output.empty:
            info_strm = StringIO()
            output.info(buf=info_strm)
            _logger.debug("%s details:\n%s", label, info_strm.getvalue())

    elif isinstance(output, np.ndarray):
        # Large swath grids are summarized rather than printed in full.
        if np.get_printoptions()["threshold"] == 1000:
            np.set_printoptions(threshold=100)
        _logger.debug("%s%s [%s]:\n %s", label, output.shape, output.dtype, output)

    elif isinstance(output, xr.Dataset):
        _logger.debug("%s%s:\n %s", label, dict(output.sizes), output)

    elif isinstance(output, tuple):
        for i, item in enumerate(output):
            _log_output(_logger, item, max_rows, label=f"{label}[{i}] {item.__class__.__name__}")


def log_return(max_rows=5):
    """Debug-log the grids or tables returned by a function.

    Arrays, DataFrames and Datasets are logged to the logger of the decorated
    function's module, as are the elements of a returned tuple. Nothing is
    formatted unless that logger is enabled for DEBUG.
    """

    def log_return_wrapper(func):
        _logger = logging.getLogger(getattr(func, "__module__", __name__))

        @functools.wraps(func)
        def log_return_call(*args, **kwargs):
            output = func(*args, **kwargs)
            if _logger.isEnabledFor(logging.DEBUG):
                _log_output(_logger, output, max_rows)
            return output

        return log_return_call

    return log_return_wrapper


def _log_file_path(log_file: typing.Union[bool, str, Path]) -> Path:
    """Resolve the log file option to a file path."""
    default_name = f"bowtie.{datetime.datetime.now(datetime.timezone.utc).strftime('%Y%m%dT%H%M%S')}.log"
    if log_file is True:
        return Path.cwd() / default_name
    log_file = Path(log_file)
    if log_file.is_dir():
        return log_file / default_name
    return log_file


def enable_logging(
    log_level=logging.DEBUG, log_file: typing.Union[bool, str, Path] = False, extra_loggers: list[str] = None
) -> logging.Logger:
    """Enable logging to the console and optionally to a file.

    Parameters
    ----------
    log_level : int or str
        Console log level, e.g., "info" or `logging.DEBUG`.
    log_file : bool or str or Path, optional
        Also log to a file, always at DEBUG level. If True, an auto-named file
        is created in the current working directory. If a directory, an
        auto-named file is created there. Otherwise the given file is
        appended to.
    extra_loggers : list[str], optional
        Additional loggers (e.g., a script's own) to enable at the same level
        as the package.

    Returns
    -------
    logging.Logger
        The package logger, for use by scripts.

    """
    if isinstance(log_level, str):
        log_level = log_level.upper()
    root_level = "DEBUG" if log_file else log_level

    loggers = {"bowtie": {"level": root_level}}
    loggers.update({name: {"level": "ERROR"} for name in QUIET_LOGGERS})
    loggers.update({name: {"level": root_level} for name in extra_loggers or ()})

    handlers = {
        "console": {
            "level": log_level,
            "class": "logging.StreamHandler",
            "formatter": "simple",
            "stream": "ext://sys.stdout",
        },
        "file": {"class": "logging.NullHandler"},
    }
    if log_file:
        log_file = _log_file_path(log_file)
        handlers["file"] = {
            "level": root_level,
            "class": "logging.FileHandler",
            "formatter": "detailed",
            "filename": str(log_file),
            "mode": "a",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": True,
            "formatters": {
                "simple": {"class": "logging.Formatter", "format": LOG_FORMAT, "datefmt": LOG_DATE_FORMAT},
                "detailed": {"class": "logging.Formatter", "format": DETAILED_LOG_FORMAT, "datefmt": LOG_DATE_FORMAT},
            },
            "handlers": handlers,
            "loggers": loggers,
            "root": {"level": root_level, "handlers": ["console", "file"]},
        }
    )

    if log_file:
        logger.debug("Logging to file: %s", log_file)
    return logging.getLogger("bowtie")
