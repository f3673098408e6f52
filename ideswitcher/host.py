"""Interface of the host editor embedding the bridge.

The bridge never edits documents itself: it asks the host editor to open a
file, move the cursor or show a message. A plugin of a real editor
implements HostEditor and Document; ConsoleHost is the headless host used by
the command-line interface.
"""

from __future__ import annotations

import abc
import enum
import logging
import shlex
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable

from ideswitcher.ipc.errors import ActionError

log = logging.getLogger(__name__)


class MessageKind(enum.StrEnum):
	"""Severity of a message shown to the user."""

	INFO = enum.auto()
	WARNING = enum.auto()
	ERROR = enum.auto()


def run_in_thread(func: Callable, *args: Any, **kwargs: Any) -> None:
	"""Run a function on a new daemon thread.

	Args:
		func: The function to run
		*args: The function arguments
		**kwargs: The function keyword arguments
	"""
	threading.Thread(
		target=func, args=args, kwargs=kwargs, daemon=True
	).start()


class Document(abc.ABC):
	"""A document opened in the host editor."""

	@property
	@abc.abstractmethod
	def path(self) -> str:
		"""Absolute path of the document."""

	@property
	@abc.abstractmethod
	def is_dirty(self) -> bool:
		"""Whether the document has unsaved changes."""

	@abc.abstractmethod
	def save(self) -> None:
		"""Save the document synchronously."""

	@abc.abstractmethod
	def get_cursor_position(self) -> tuple[int, int]:
		"""Return the 0-based (line, column) of the cursor."""


class HostEditor(abc.ABC):
	"""Editor operations consumed by the bridge."""

	@abc.abstractmethod
	def get_active_document(self) -> Document | None:
		"""Return the document having the focus, if any."""

	@abc.abstractmethod
	def open_document(self, path: str) -> Document:
		"""Open a document and make it the active one.

		Args:
			path: Absolute path of the file

		Returns:
			The opened document

		Raises:
			ActionError: If the file cannot be opened
		"""

	@abc.abstractmethod
	def set_cursor_position(
		self, document: Document, line: int, column: int
	) -> None:
		"""Move the cursor to a 0-based position."""

	@abc.abstractmethod
	def reveal_position(
		self, document: Document, line: int, column: int
	) -> None:
		"""Scroll a 0-based position into view."""

	@abc.abstractmethod
	def focus_editor_window(self) -> None:
		"""Give the focus to the editor area inside the host window."""

	@abc.abstractmethod
	def show_user_message(self, kind: MessageKind, text: str) -> None:
		"""Show a notification to the user."""

	def call_after(self, func: Callable, *args: Any, **kwargs: Any) -> None:
		"""Schedule a call on the thread allowed to mutate editor state.

		GUI hosts override this with their UI-thread marshaller
		(wx.CallAfter for instance). The default runs the call on a daemon
		thread so the caller is never blocked.
		"""
		run_in_thread(func, *args, **kwargs)


class FileDocument(Document):
	"""A file on disk with a cursor position, used by ConsoleHost."""

	def __init__(self, path: str, line: int = 0, column: int = 0):
		"""Initialize the document.

		Args:
			path: Path of the file
			line: 0-based cursor line
			column: 0-based cursor column
		"""
		self._path = str(Path(path).absolute())
		self.line = line
		self.column = column

	@property
	def path(self) -> str:
		return self._path

	@property
	def is_dirty(self) -> bool:
		return False

	def save(self) -> None:
		pass

	def get_cursor_position(self) -> tuple[int, int]:
		return self.line, self.column


class ConsoleHost(HostEditor):
	"""Headless host editor used by the command-line interface.

	Received files can be forwarded to an external editor through a command
	template with the {path}, {line} and {column} placeholders (1-based).
	"""

	def __init__(
		self,
		active_document: FileDocument | None = None,
		open_command: str | None = None,
	):
		"""Initialize the console host.

		Args:
			active_document: Document returned as the active one
			open_command: Command template run when a position is revealed
		"""
		self.active_document = active_document
		self.open_command = open_command

	def get_active_document(self) -> FileDocument | None:
		return self.active_document

	def open_document(self, path: str) -> FileDocument:
		if not Path(path).is_file():
			raise ActionError(f"{path} is not an existing file")
		self.active_document = FileDocument(path)
		return self.active_document

	def set_cursor_position(
		self, document: FileDocument, line: int, column: int
	) -> None:
		document.line = line
		document.column = column

	def reveal_position(
		self, document: FileDocument, line: int, column: int
	) -> None:
		log.info("Opened %s at %d:%d", document.path, line + 1, column + 1)
		if not self.open_command:
			return
		command = [
			arg.format(path=document.path, line=line + 1, column=column + 1)
			for arg in shlex.split(self.open_command)
		]
		log.debug("Running open command: %s", command)
		try:
			subprocess.Popen(
				command,
				stdout=subprocess.DEVNULL,
				stderr=subprocess.DEVNULL,
				start_new_session=True,
			)
		except OSError as e:
			raise ActionError(f"cannot run {command[0]}: {e}") from e

	def focus_editor_window(self) -> None:
		pass

	def show_user_message(self, kind: MessageKind, text: str) -> None:
		level = {
			MessageKind.INFO: logging.INFO,
			MessageKind.WARNING: logging.WARNING,
			MessageKind.ERROR: logging.ERROR,
		}[kind]
		log.log(level, text)
