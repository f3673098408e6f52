"""User-facing "switch to peer" command."""

from __future__ import annotations

import logging
import threading

from ideswitcher.dispatcher import OutboundDispatcher
from ideswitcher.host import HostEditor, MessageKind
from ideswitcher.ipc import IdeSwitcherError, SwitchRequest

log = logging.getLogger(__name__)


class SwitchCommand:
	"""Run the outbound dispatcher and report its outcome to the user.

	Dispatcher errors stop here: each one becomes a single user message.
	"""

	def __init__(self, host: HostEditor, dispatcher: OutboundDispatcher):
		"""Initialize the command.

		Args:
			host: Host editor showing the outcome
			dispatcher: Dispatcher delivering the request
		"""
		self.host = host
		self.dispatcher = dispatcher

	def __call__(self) -> bool:
		"""Switch to the peer, blocking until the exchange is over.

		Returns:
			True if the request was delivered
		"""
		try:
			self.dispatcher.switch()
		except Exception as e:
			self.report_error(e)
			return False
		return True

	def run_in_background(self) -> threading.Thread | None:
		"""Switch to the peer without blocking the calling thread.

		The editing context is read and saved on the calling thread, which
		must be the editor UI thread; only the exchange runs in the
		background and its errors come back through HostEditor.call_after.

		Returns:
			The thread sending the request, or None if nothing is sent
		"""
		try:
			request = self.dispatcher.build_request()
		except Exception as e:
			self.report_error(e)
			return None
		thread = threading.Thread(
			target=self._send, args=(request,), daemon=True
		)
		thread.start()
		return thread

	def _send(self, request: SwitchRequest) -> None:
		try:
			self.dispatcher.send(request)
		except Exception as e:
			self.host.call_after(self.report_error, e)

	def report_error(self, error: Exception) -> None:
		"""Show a failed switch to the user.

		Args:
			error: The error raised by the dispatcher
		"""
		if isinstance(error, IdeSwitcherError):
			log.warning("Switch failed: %s", error)
			self.host.show_user_message(MessageKind.WARNING, str(error))
			return
		log.error("Error switching to the peer: %s", error, exc_info=error)
		self.host.show_user_message(
			MessageKind.ERROR, f"Error switching to the peer: {error}"
		)
