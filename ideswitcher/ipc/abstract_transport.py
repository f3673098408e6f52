"""Abstract base classes for the byte-stream transport of the bridge.

This module provides the interface the platform transports implement: a
named listening endpoint, and connections carrying exactly one message
terminated by the sender closing its write side.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any

from ideswitcher.consts import MAX_MESSAGE_SIZE

log = logging.getLogger(__name__)


@dataclass
class BoundEndpoint:
	"""A listening endpoint owning a well-known channel name."""

	name: str
	address: str
	resource: Any = None
	# platform data telling this binding apart from a later one under the same name
	identity: Any = None
	# lock held for as long as the name is bound, when the platform needs one
	lock: Any = None

	@property
	def closed(self) -> bool:
		"""Whether the endpoint has released its channel name."""
		return self.resource is None


class Connection(abc.ABC):
	"""One connection used for a single message exchange."""

	def __enter__(self) -> Connection:
		return self

	def __exit__(self, exc_type, exc_value, traceback) -> None:
		self.close()

	@abc.abstractmethod
	def read_all(self, max_size: int = MAX_MESSAGE_SIZE) -> bytes:
		"""Read until the peer closes its write side.

		Args:
			max_size: Largest payload accepted

		Returns:
			Every byte received, assembled from all partial reads

		Raises:
			DecodeError: If the peer sends more than max_size bytes
			OSError: If the connection fails or times out
		"""

	@abc.abstractmethod
	def write(self, data: bytes) -> None:
		"""Write the whole buffer to the peer."""

	@abc.abstractmethod
	def close_write(self) -> None:
		"""Half-close the connection to signal the end of the message."""

	@abc.abstractmethod
	def set_timeout(self, timeout: float | None) -> None:
		"""Bound the duration of the following blocking operations."""

	@abc.abstractmethod
	def close(self) -> None:
		"""Close the connection. Calling it twice is allowed."""


class AbstractTransport(abc.ABC):
	"""Platform transport locating endpoints by a process-independent name.

	Concrete implementations map a channel name to an OS-addressable
	endpoint (unix domain socket path, named pipe) and guarantee that only
	one endpoint at a time can listen under a given name.
	"""

	@abc.abstractmethod
	def endpoint_address(self, name: str) -> str:
		"""Return the OS address of the channel name."""

	@abc.abstractmethod
	def listen(self, name: str) -> BoundEndpoint:
		"""Bind a receiving endpoint under name.

		Args:
			name: Channel name

		Returns:
			The bound endpoint

		Raises:
			BindError: If another listener already owns the name
		"""

	@abc.abstractmethod
	def accept(
		self, endpoint: BoundEndpoint, timeout: float | None = None
	) -> Connection | None:
		"""Wait for a peer connection.

		Args:
			endpoint: The endpoint returned by listen
			timeout: Seconds to wait; implementations that cannot bound the
				wait ignore it and must be woken by a connection

		Returns:
			The accepted connection, or None when the timeout expired

		Raises:
			OSError: If the endpoint failed
		"""

	@abc.abstractmethod
	def connect(self, name: str, timeout: float) -> Connection:
		"""Connect to the listener owning name.

		Args:
			name: Channel name of the peer
			timeout: Seconds allowed to establish the connection

		Returns:
			The connected connection

		Raises:
			ConnectError: If no listener owns the name
			ConnectTimeoutError: If the listener did not answer in time
		"""

	@abc.abstractmethod
	def close_listener(self, endpoint: BoundEndpoint) -> None:
		"""Close the endpoint and release its name. Idempotent."""
