"""Wire the bridge components of one editor process together."""

from __future__ import annotations

import logging

from ideswitcher.action_handler import ActionHandler
from ideswitcher.commands import SwitchCommand
from ideswitcher.config import EditorRole, IdeSwitcherConfig
from ideswitcher.config import conf as get_conf
from ideswitcher.dispatcher import OutboundDispatcher
from ideswitcher.host import HostEditor
from ideswitcher.ipc import AbstractTransport, PlatformTransport
from ideswitcher.listener import InboundListener, start_listener, stop_listener
from ideswitcher.window_activation import (
	AbstractWindowActivator,
	get_window_activator,
)

log = logging.getLogger(__name__)


class IdeSwitcherBridge:
	"""Bidirectional bridge between a host editor and its peer.

	The bridge listens on the inbound channel of its role and sends switch
	requests to the inbound channel of the peer role.
	"""

	def __init__(
		self,
		host: HostEditor,
		conf: IdeSwitcherConfig | None = None,
		role: EditorRole | None = None,
		transport: AbstractTransport | None = None,
		window_activator: AbstractWindowActivator | None = None,
	):
		"""Initialize the bridge.

		Args:
			host: The host editor embedding the bridge
			conf: Configuration, the user configuration when omitted
			role: Role of this process, the configured role when omitted
			transport: Transport, the platform transport when omitted
			window_activator: Window activation capability, the platform one when omitted
		"""
		self.host = host
		self.conf = conf or get_conf()
		self.role = EditorRole(role or self.conf.general.role)
		self.transport = transport or PlatformTransport()
		self.window_activator = window_activator or get_window_activator()
		self.inbound_channel = self.conf.channels.inbound(self.role)
		self.outbound_channel = self.conf.channels.outbound(self.role)
		self.action_handler = ActionHandler(
			host,
			self.window_activator,
			self.conf.focus.query_for(self.role),
		)
		self.dispatcher = OutboundDispatcher(
			host,
			self.transport,
			self.outbound_channel,
			self.window_activator,
			self.conf.focus.query_for(self.role.peer),
			source=self.role.value,
			peer_label=self.role.peer.label,
			timeout=self.conf.switch.connect_timeout,
			auto_save=self.conf.switch.auto_save,
		)
		self.switch_command = SwitchCommand(host, self.dispatcher)
		self.listener: InboundListener | None = None

	def __enter__(self) -> IdeSwitcherBridge:
		self.start()
		return self

	def __exit__(self, exc_type, exc_value, traceback) -> None:
		self.stop()

	def start(self) -> InboundListener | None:
		"""Start listening for switch requests of the peer.

		Returns:
			The running listener, or None if the listener is disabled
		"""
		if self.listener is not None:
			return self.listener
		if not self.conf.listener.enable:
			log.info("Inbound listener disabled in configuration")
			return None
		self.listener = start_listener(
			self.transport,
			self.inbound_channel,
			self.action_handler.handle,
			call_after=self.host.call_after,
			retry_delay=self.conf.listener.retry_delay,
		)
		log.info(
			"Bridge started as %s: listening on %s, sending to %s",
			self.role,
			self.inbound_channel,
			self.outbound_channel,
		)
		return self.listener

	def stop(self) -> None:
		"""Stop the listener. Idempotent."""
		if self.listener is None:
			return
		listener, self.listener = self.listener, None
		stop_listener(listener)
		log.info("Bridge stopped")

	def switch_to_peer(self) -> bool:
		"""Run the switch command, blocking until it is over.

		Returns:
			True if the request was delivered
		"""
		return self.switch_command()
