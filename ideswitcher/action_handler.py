"""Apply a received switch request to the host editor."""

from __future__ import annotations

import logging

from ideswitcher.consts import SWITCH_ACTION
from ideswitcher.host import HostEditor, MessageKind
from ideswitcher.ipc import SwitchRequest
from ideswitcher.window_activation import AbstractWindowActivator, WindowQuery

log = logging.getLogger(__name__)


class ActionHandler:
	"""Open the requested file at the requested position and focus the host.

	The handler must run on the thread the host editor requires for UI
	mutation; the listener schedules it through HostEditor.call_after.
	"""

	def __init__(
		self,
		host: HostEditor,
		window_activator: AbstractWindowActivator,
		window_query: WindowQuery,
	):
		"""Initialize the action handler.

		Args:
			host: The host editor receiving the requests
			window_activator: OS capability used to foreground the host window
			window_query: Identifies the window of the host editor
		"""
		self.host = host
		self.window_activator = window_activator
		self.window_query = window_query

	def handle(self, request: SwitchRequest) -> bool:
		"""Apply a switch request.

		Errors are reported to the user and never raised, a failing request
		must not affect the following ones.

		Args:
			request: The decoded request

		Returns:
			True if the file was opened at the requested position
		"""
		if request.action != SWITCH_ACTION or not request.file_path:
			log.info(
				"Ignoring %r request from %r", request.action, request.source
			)
			return False
		log.info(
			"Switch request from %r (pid %s): %s:%d:%d",
			request.source,
			request.pid,
			request.file_path,
			request.line,
			request.column,
		)
		line, column = request.editor_position()
		try:
			document = self.host.open_document(request.file_path)
			self.host.set_cursor_position(document, line, column)
			self.host.reveal_position(document, line, column)
		except Exception as e:
			log.error(
				"Error opening file %s: %s", request.file_path, e, exc_info=True
			)
			self.host.show_user_message(
				MessageKind.ERROR, f"Could not open file: {request.file_path}"
			)
			return False
		self.focus_host_window()
		return True

	def focus_host_window(self) -> None:
		"""Focus the editor area, then bring the host window to the front."""
		try:
			self.host.focus_editor_window()
		except Exception as e:
			log.warning("Error focusing the editor area: %s", e)
		try:
			self.window_activator.activate(self.window_query)
		except Exception as e:
			log.warning("Error bringing the host window to the front: %s", e)
