"""This module is the entry point of the ideswitcher command-line interface.

It provides a headless bridge for editors without a plugin and for scripts:
- listen: receive switch requests and forward them to an external command
- switch: send a file position to the peer process
- status: print the channels and options in use
"""

import argparse
import logging
import sys

import ideswitcher.config as config
from ideswitcher import __version__
from ideswitcher.bridge import IdeSwitcherBridge
from ideswitcher.config import EditorRole, IdeSwitcherConfig
from ideswitcher.consts import APP_NAME
from ideswitcher.host import ConsoleHost, FileDocument
from ideswitcher.logger import logging_uncaught_exceptions, setup_logging

log = logging.getLogger(__name__)


def positive_int(value: str) -> int:
	"""Argparse type accepting integers greater than zero."""
	number = int(value)
	if number < 1:
		raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
	return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""Parse command-line arguments of the ideswitcher command.

	Arguments:
		--log_level, -L (str | None): Sets the logging level. Defaults to the configured level.
		--role, -r (str | None): Side of the bridge this process plays. Defaults to the configured role.
		listen [--open-command CMD]: Receive switch requests until interrupted.
		switch FILE [--line N] [--column N]: Send a 1-based file position to the peer.
		status: Print the channels and options in use.

	Args:
		argv: Arguments to parse, sys.argv when omitted

	Returns:
		argparse.Namespace: Parsed command-line arguments with their values.
	"""
	parser = argparse.ArgumentParser(
		prog=APP_NAME,
		description="Switch the current file between a text editor and an IDE",
	)
	parser.add_argument(
		"--version", action="version", version=f"%(prog)s {__version__}"
	)
	parser.add_argument(
		"--log_level",
		"-L",
		type=str,
		default=None,
		help="Set the log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
	)
	parser.add_argument(
		"--role",
		"-r",
		choices=[role.value for role in EditorRole],
		default=None,
		help="Side of the bridge this process plays",
	)
	subparsers = parser.add_subparsers(dest="command", required=True)
	listen_parser = subparsers.add_parser(
		"listen", help="Receive switch requests until interrupted"
	)
	listen_parser.add_argument(
		"--open-command",
		dest="open_command",
		default=None,
		help="Command run for each received file, "
		"{path}, {line} and {column} are replaced",
	)
	switch_parser = subparsers.add_parser(
		"switch", help="Send a file position to the peer"
	)
	switch_parser.add_argument("file_path", help="File to open in the peer")
	switch_parser.add_argument(
		"--line", "-l", type=positive_int, default=1, help="1-based line"
	)
	switch_parser.add_argument(
		"--column", "-c", type=positive_int, default=1, help="1-based column"
	)
	subparsers.add_parser("status", help="Print the channels and options in use")
	return parser.parse_args(argv)


def print_status(conf: IdeSwitcherConfig, role: EditorRole) -> None:
	"""Print the bridge settings of a role."""
	print(f"role: {role}")
	print(f"inbound channel: {conf.channels.inbound(role)}")
	print(f"outbound channel: {conf.channels.outbound(role)}")
	print(f"shortcut: {conf.switch.shortcut}")
	print(f"auto save: {conf.switch.auto_save}")
	print(f"peer executable: {conf.switch.peer_executable or 'not set'}")


def run_listener(bridge: IdeSwitcherBridge) -> int:
	"""Serve switch requests until the listener stops or the user interrupts."""
	listener = bridge.start()
	if listener is None:
		log.error("The listener is disabled in the configuration")
		return 1
	try:
		while listener.is_alive():
			listener.join(1.0)
	except KeyboardInterrupt:
		log.info("Interrupted by user")
	finally:
		bridge.stop()
	return 0


def main(argv: list[str] | None = None) -> int:
	"""Run the ideswitcher command.

	Args:
		argv: Command-line arguments, sys.argv when omitted

	Returns:
		The process exit status
	"""
	args = parse_args(argv)
	conf = config.conf()
	role = EditorRole(args.role) if args.role else conf.general.role
	setup_logging(args.log_level or conf.general.log_level.name, role)
	sys.excepthook = logging_uncaught_exceptions
	log.debug(f"args: {args}")
	if args.command == "status":
		print_status(conf, role)
		return 0
	if args.command == "switch":
		host = ConsoleHost(
			FileDocument(args.file_path, args.line - 1, args.column - 1)
		)
		bridge = IdeSwitcherBridge(host, conf=conf, role=role)
		return 0 if bridge.switch_to_peer() else 1
	host = ConsoleHost(
		open_command=args.open_command or conf.listener.open_command
	)
	return run_listener(IdeSwitcherBridge(host, conf=conf, role=role))


if __name__ == '__main__':
	sys.exit(main())
