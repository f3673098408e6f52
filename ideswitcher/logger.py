"""Logging utilities for the ideswitcher application.

Both sides of the bridge usually run at the same time on one machine, each
side writes its own log file.
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Type

from platformdirs import user_log_path

import ideswitcher.global_vars as global_vars
from ideswitcher.consts import APP_AUTHOR, APP_NAME

LOG_FORMAT = (
	"%(asctime)s - %(process)d - %(threadName)s - %(name)s - "
	"%(levelname)s - %(message)s"
)


def get_log_file_path(role: str | None = None) -> Path:
	"""Get the log file path of one side of the bridge.

	The directory is the portable user_data_path if configured, the
	platformdirs user log directory otherwise.

	Args:
		role: Side of the bridge, its name is appended to the file name

	Returns:
		The path to the log file
	"""
	file_name = f"{APP_NAME}-{role}.log" if role else f"{APP_NAME}.log"
	if global_vars.user_data_path:
		return global_vars.user_data_path / file_name
	return user_log_path(APP_NAME, APP_AUTHOR, ensure_exists=True) / file_name


def setup_logging(level: str, role: str | None = None) -> None:
	"""Send ideswitcher log records to the log file of a role.

	A stream handler is added when not running from a frozen executable.

	Args:
		level: logging level to set. 'OFF' is converted to 'NOTSET'.
		role: Side of the bridge this process plays
	"""
	level = level.upper()
	if level == "OFF":
		level = "NOTSET"
	handlers = [logging.FileHandler(get_log_file_path(role), mode="w")]
	if not getattr(sys, "frozen", False):
		handlers.append(logging.StreamHandler())
	logging.basicConfig(
		level=level, format=LOG_FORMAT, handlers=handlers, force=True
	)


def logging_uncaught_exceptions(
	exc_type: Type[BaseException],
	exc_value: BaseException,
	exc_traceback: TracebackType,
) -> None:
	"""Log uncaught exceptions to the logger of the module raising them.

	Args:
		exc_type: exception type is an exception class
		exc_value: exception value is an exception instance
		exc_traceback: exception traceback is a traceback object
	"""
	if issubclass(exc_type, KeyboardInterrupt):
		logging.info("Keyboard interrupt")
		return
	logging.getLogger(exc_type.__module__).error(
		"Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
	)
