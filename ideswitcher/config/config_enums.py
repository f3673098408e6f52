from __future__ import annotations

import enum


class LogLevelEnum(enum.StrEnum):
	"""Enum values for log levels."""

	# no log messages are displayed
	NOTSET = "off"
	# log messages are displayed for debugging purposes
	DEBUG = enum.auto()
	# log messages are displayed for informational purposes
	INFO = enum.auto()
	# log messages are displayed for warning purposes
	WARNING = enum.auto()
	# log messages are displayed for error purposes
	ERROR = enum.auto()
	# log messages are displayed for critical purposes
	CRITICAL = enum.auto()


class EditorRole(enum.StrEnum):
	"""Side of the bridge a process plays."""

	# text editor front end
	EDITOR = enum.auto()
	# IDE process
	IDE = enum.auto()

	@property
	def peer(self) -> EditorRole:
		"""The role of the process on the other end of the bridge."""
		return EditorRole.IDE if self is EditorRole.EDITOR else EditorRole.EDITOR

	@property
	def label(self) -> str:
		"""Name of the role shown in user messages."""
		return {
			EditorRole.EDITOR: "the text editor",
			EditorRole.IDE: "the IDE",
		}[self]
