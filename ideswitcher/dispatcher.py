"""Send the current editing context to the peer process.

The outbound dispatcher turns a local "switch now" trigger into one
delivered switch request. When the peer cannot be reached it still tries to
bring the peer window to the front before reporting the error.
"""

from __future__ import annotations

import logging
import time

from ideswitcher.consts import DEFAULT_CONNECT_TIMEOUT
from ideswitcher.decorators import measure_time
from ideswitcher.host import HostEditor
from ideswitcher.ipc import (
	AbstractTransport,
	ConnectError,
	ConnectTimeoutError,
	NoActiveDocumentError,
	SwitchRequest,
	encode,
)
from ideswitcher.window_activation import AbstractWindowActivator, WindowQuery

log = logging.getLogger(__name__)


class OutboundDispatcher:
	"""Deliver switch requests to the peer inbound channel."""

	def __init__(
		self,
		host: HostEditor,
		transport: AbstractTransport,
		channel_name: str,
		window_activator: AbstractWindowActivator,
		peer_window_query: WindowQuery,
		source: str,
		peer_label: str = "the peer IDE",
		timeout: float = DEFAULT_CONNECT_TIMEOUT,
		auto_save: bool = True,
	):
		"""Initialize the dispatcher.

		Args:
			host: The local host editor
			transport: Transport used to reach the peer
			channel_name: Inbound channel name of the peer
			window_activator: OS capability used by the fallback
			peer_window_query: Identifies the window of the peer
			source: Name of this side, sent for diagnostics
			peer_label: Name of the peer used in error messages
			timeout: Seconds allowed for the whole exchange
			auto_save: Save a modified document before switching
		"""
		self.host = host
		self.transport = transport
		self.channel_name = channel_name
		self.window_activator = window_activator
		self.peer_window_query = peer_window_query
		self.source = source
		self.peer_label = peer_label
		self.timeout = timeout
		self.auto_save = auto_save

	def build_request(self) -> SwitchRequest:
		"""Build a switch request from the active document.

		Returns:
			The request carrying the 1-based cursor position

		Raises:
			NoActiveDocumentError: If no document is active
		"""
		document = self.host.get_active_document()
		if document is None:
			raise NoActiveDocumentError("No active editor to switch from")
		if self.auto_save and document.is_dirty:
			log.debug("Saving %s before switching", document.path)
			document.save()
		line, column = document.get_cursor_position()
		return SwitchRequest.from_editor_position(
			document.path, line, column, self.source
		)

	@measure_time
	def switch(self) -> SwitchRequest:
		"""Send the current editing context to the peer.

		Returns:
			The delivered request

		Raises:
			NoActiveDocumentError: If no document is active
			ConnectError: If the peer is not reachable
			ConnectTimeoutError: If the peer did not answer in time
		"""
		request = self.build_request()
		self.send(request)
		return request

	def send(self, request: SwitchRequest) -> None:
		"""Deliver a request, falling back to activating the peer window.

		Args:
			request: The request to deliver

		Raises:
			ConnectError: If the peer is not reachable
			ConnectTimeoutError: If the peer did not answer in time
		"""
		log.info("Switching to %s with %s", self.peer_label, request)
		try:
			self._deliver(encode(request))
		except TimeoutError as e:
			log.warning("Connection to %s timed out: %s", self.peer_label, e)
			self._activate_peer_window()
			raise ConnectTimeoutError(
				f"Connection to {self.peer_label} timed out"
			) from e
		except (ConnectError, OSError) as e:
			log.warning("Cannot reach %s: %s", self.peer_label, e)
			self._activate_peer_window()
			raise ConnectError(
				f"Could not connect to {self.peer_label}. "
				"Is the IDE Switcher plugin installed?"
			) from e
		log.info("Switch request delivered to %s", self.peer_label)

	def _deliver(self, payload: bytes) -> None:
		"""Connect, write the payload and half-close, under one deadline."""
		deadline = time.monotonic() + self.timeout
		connection = self.transport.connect(self.channel_name, self.timeout)
		try:
			remaining = deadline - time.monotonic()
			if remaining <= 0:
				raise ConnectTimeoutError("no time left to send the request")
			connection.set_timeout(remaining)
			connection.write(payload)
			connection.close_write()
		finally:
			# destroys the connection when the deadline expired mid-write
			connection.close()

	def _activate_peer_window(self) -> None:
		"""Best-effort fallback when the request could not be delivered."""
		try:
			self.window_activator.activate(self.peer_window_query)
		except Exception as e:
			log.warning("Error activating the %s window: %s", self.peer_label, e)
