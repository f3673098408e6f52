"""Inbound listener receiving switch requests from the peer process.

The listener runs on its own daemon thread for the whole life of the
bridge. It reads one request per connection, hands it to the request
callback through a scheduler and immediately goes back to accepting. It
survives any single bad connection and keeps trying to bind its channel
when the name is taken or the endpoint fails.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable

from ideswitcher.consts import ACCEPT_POLL_INTERVAL, DEFAULT_RETRY_DELAY
from ideswitcher.host import run_in_thread
from ideswitcher.ipc import (
	AbstractTransport,
	BindError,
	BoundEndpoint,
	ConnectError,
	Connection,
	DecodeError,
	SwitchRequest,
	decode,
)

log = logging.getLogger(__name__)


class ListenerState(enum.StrEnum):
	"""Lifecycle states of the inbound listener."""

	STOPPED = enum.auto()
	STARTING = enum.auto()
	LISTENING = enum.auto()
	RECEIVING = enum.auto()
	DISPATCHING = enum.auto()
	RETRY_PENDING = enum.auto()


class InboundListener(threading.Thread):
	"""Thread accepting switch requests on a well-known channel.

	The listener object is the handle of a running listener: it is returned
	by start_listener and given back to stop_listener.
	"""

	# seconds allowed to the wake-up connection sent by stop
	WAKE_TIMEOUT = 1.0

	def __init__(
		self,
		transport: AbstractTransport,
		channel_name: str,
		on_request: Callable[[SwitchRequest], Any],
		call_after: Callable[..., None] = run_in_thread,
		retry_delay: float = DEFAULT_RETRY_DELAY,
		poll_interval: float = ACCEPT_POLL_INTERVAL,
	) -> None:
		"""Initialize the listener.

		Args:
			transport: Transport providing the listening endpoint
			channel_name: Name of the inbound channel
			on_request: Called with each decoded request
			call_after: Schedules on_request without blocking the listener
			retry_delay: Seconds between two bind attempts
			poll_interval: Seconds between two checks of the stop flag
		"""
		super().__init__(name=f"ideswitcher-{channel_name}", daemon=True)
		self.transport = transport
		self.channel_name = channel_name
		self.on_request = on_request
		self.call_after = call_after
		self.retry_delay = retry_delay
		self.poll_interval = poll_interval
		self.state = ListenerState.STOPPED
		self.bind_failures = 0
		self.endpoint: BoundEndpoint | None = None
		self._endpoint_lock = threading.Lock()
		self._stop_event = threading.Event()
		self._listening = threading.Event()

	@property
	def stopping(self) -> bool:
		"""Whether stop was requested."""
		return self._stop_event.is_set()

	def wait_until_listening(self, timeout: float | None = None) -> bool:
		"""Block until the endpoint is bound.

		Args:
			timeout: Seconds to wait

		Returns:
			True if the listener is bound to its channel
		"""
		return self._listening.wait(timeout)

	def run(self) -> None:
		"""Bind the channel and serve connections until stopped."""
		while not self.stopping:
			self.state = ListenerState.STARTING
			try:
				endpoint = self.transport.listen(self.channel_name)
			except BindError as e:
				self.bind_failures += 1
				log.warning(
					"Cannot listen on %s, another instance may be running: %s. "
					"Retrying in %s seconds",
					self.channel_name,
					e,
					self.retry_delay,
				)
				self._wait_before_retry()
				continue
			with self._endpoint_lock:
				self.endpoint = endpoint
			log.info(
				"Listening for switch requests on %s", endpoint.address
			)
			try:
				self._serve(endpoint)
			except Exception as e:
				if not self.stopping:
					log.error(
						"Listener on %s failed: %s",
						self.channel_name,
						e,
						exc_info=True,
					)
			finally:
				self._close_endpoint()
			if not self.stopping:
				self._wait_before_retry()
		self.state = ListenerState.STOPPED
		log.debug("Listener on %s stopped", self.channel_name)

	def _wait_before_retry(self) -> None:
		self.state = ListenerState.RETRY_PENDING
		self._stop_event.wait(self.retry_delay)

	def _serve(self, endpoint: BoundEndpoint) -> None:
		"""Accept connections one at a time until stopped.

		Raises:
			OSError: If the endpoint fails, the caller binds it again
		"""
		while not self.stopping:
			self.state = ListenerState.LISTENING
			self._listening.set()
			connection = self.transport.accept(endpoint, self.poll_interval)
			if connection is None:
				continue
			with connection:
				if self.stopping:
					return
				self.state = ListenerState.RECEIVING
				self._receive(connection)

	def _receive(self, connection: Connection) -> None:
		"""Read, decode and dispatch the request of one connection."""
		try:
			data = connection.read_all()
		except (DecodeError, OSError) as e:
			log.warning("Error reading switch request: %s", e)
			return
		if not data:
			# probe and wake-up connections carry no payload
			log.debug("Empty connection on %s ignored", self.channel_name)
			return
		try:
			request = decode(data)
		except DecodeError as e:
			log.error("Invalid message dropped: %s", e)
			return
		self.state = ListenerState.DISPATCHING
		log.debug("Received %s", request)
		try:
			self.call_after(self.on_request, request)
		except Exception as e:
			log.error("Error dispatching switch request: %s", e, exc_info=True)

	def _close_endpoint(self) -> None:
		with self._endpoint_lock:
			endpoint, self.endpoint = self.endpoint, None
			self._listening.clear()
		if endpoint is not None:
			self.transport.close_listener(endpoint)

	def _wake(self) -> None:
		"""Wake a pending accept so stop does not wait for the poll interval."""
		if self.endpoint is None:
			return
		try:
			self.transport.connect(self.channel_name, self.WAKE_TIMEOUT).close()
		except ConnectError:
			pass

	def stop(self, timeout: float = 5.0) -> None:
		"""Stop the listener and release the channel name.

		Calling it more than once, or on a listener never started, is
		allowed.

		Args:
			timeout: Seconds to wait for the listener thread
		"""
		self._stop_event.set()
		if self.is_alive():
			self._wake()
			if threading.current_thread() is not self:
				self.join(timeout)
				if self.is_alive():
					log.warning(
						"Listener on %s did not stop in time", self.channel_name
					)
		self._close_endpoint()
		if not self.is_alive():
			self.state = ListenerState.STOPPED


def start_listener(
	transport: AbstractTransport,
	channel_name: str,
	on_request: Callable[[SwitchRequest], Any],
	call_after: Callable[..., None] = run_in_thread,
	retry_delay: float = DEFAULT_RETRY_DELAY,
	poll_interval: float = ACCEPT_POLL_INTERVAL,
) -> InboundListener:
	"""Start a listener thread on a channel.

	A BindError never escapes: the listener keeps retrying in the
	background until the name is free.

	Returns:
		The handle of the running listener
	"""
	listener = InboundListener(
		transport,
		channel_name,
		on_request,
		call_after=call_after,
		retry_delay=retry_delay,
		poll_interval=poll_interval,
	)
	listener.start()
	return listener


def stop_listener(listener: InboundListener, timeout: float = 5.0) -> None:
	"""Stop a listener returned by start_listener. Idempotent."""
	listener.stop(timeout)
