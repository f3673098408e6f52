"""Unix-specific transport using Unix domain sockets.

Each channel name maps to a socket file in the ideswitcher temporary
directory, guarded by an fcntl lock file next to it. The listener holding
the lock owns the name: a socket file left behind by a crashed process is
detected and removed before binding.
"""

from __future__ import annotations

import fcntl
import logging
import os
import socket
from typing import TextIO

from ideswitcher.consts import MAX_MESSAGE_SIZE, TMP_DIR

from .abstract_transport import AbstractTransport, BoundEndpoint, Connection
from .errors import BindError, ConnectError, ConnectTimeoutError, DecodeError

log = logging.getLogger(__name__)


class UnixConnection(Connection):
	"""Connection over a connected Unix domain socket."""

	RECV_BUFFER_SIZE = 65536

	def __init__(self, sock: socket.socket):
		"""Initialize the connection.

		Args:
			sock: A connected stream socket
		"""
		self.sock = sock

	def read_all(self, max_size: int = MAX_MESSAGE_SIZE) -> bytes:
		chunks = []
		size = 0
		while True:
			chunk = self.sock.recv(self.RECV_BUFFER_SIZE)
			if not chunk:
				break
			size += len(chunk)
			if size > max_size:
				raise DecodeError(f"message larger than {max_size} bytes")
			chunks.append(chunk)
		return b"".join(chunks)

	def write(self, data: bytes) -> None:
		self.sock.sendall(data)

	def close_write(self) -> None:
		self.sock.shutdown(socket.SHUT_WR)

	def set_timeout(self, timeout: float | None) -> None:
		self.sock.settimeout(timeout)

	def close(self) -> None:
		self.sock.close()


class UnixTransport(AbstractTransport):
	"""Unix-specific transport using Unix domain sockets."""

	# pending connections kept by the kernel while a request is being read
	BACKLOG = 5
	# seconds allowed to probe whether an existing socket file is alive
	PROBE_TIMEOUT = 0.5

	def __init__(self, socket_dir: str = TMP_DIR, read_timeout: float = 5.0):
		"""Initialize the Unix transport.

		Args:
			socket_dir: Directory holding the socket files
			read_timeout: Seconds an accepted peer may take to send its message
		"""
		self.socket_dir = socket_dir
		self.read_timeout = read_timeout

	def endpoint_address(self, name: str) -> str:
		return os.path.join(self.socket_dir, f"{name}.sock")

	def lock_path(self, name: str) -> str:
		return os.path.join(self.socket_dir, f"{name}.lock")

	def listen(self, name: str) -> BoundEndpoint:
		path = self.endpoint_address(name)
		os.makedirs(self.socket_dir, exist_ok=True)
		lock_file = self._acquire_lock(name)
		try:
			server_socket = self._bind(name, path)
		except BindError:
			lock_file.close()
			raise
		endpoint = BoundEndpoint(
			name=name,
			address=path,
			resource=server_socket,
			identity=os.stat(path).st_ino,
			lock=lock_file,
		)
		log.debug("Unix socket listening on %s", path)
		return endpoint

	def _acquire_lock(self, name: str) -> TextIO:
		"""Take the lock owning a channel name.

		The lock is held until close_listener, so the probe, the removal of a
		stale socket file and the bind never race with another listener.

		Returns:
			The open lock file

		Raises:
			BindError: If another listener holds the name
		"""
		try:
			lock_file = open(self.lock_path(name), "a")
		except OSError as e:
			raise BindError(f"cannot open lock of channel {name}: {e}") from e
		try:
			fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
		except OSError as e:
			lock_file.close()
			raise BindError(f"channel {name} is already in use") from e
		return lock_file

	def _bind(self, name: str, path: str) -> socket.socket:
		if os.path.exists(path):
			# a listener that does not take the lock may still own the file
			if self._is_alive(path):
				raise BindError(f"channel {name} is already in use")
			log.debug("Removing stale socket file %s", path)
			try:
				os.unlink(path)
			except FileNotFoundError:
				pass
		server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
		try:
			server_socket.bind(path)
			os.chmod(path, 0o600)
			server_socket.listen(self.BACKLOG)
		except OSError as e:
			server_socket.close()
			raise BindError(f"cannot bind channel {name}: {e}") from e
		return server_socket

	def _is_alive(self, path: str) -> bool:
		"""Check whether a listener answers on an existing socket file.

		Args:
			path: Path of the socket file

		Returns:
			True if a process accepted the probe connection
		"""
		probe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
		probe.settimeout(self.PROBE_TIMEOUT)
		try:
			probe.connect(path)
			return True
		except (ConnectionRefusedError, FileNotFoundError):
			return False
		except OSError as e:
			log.debug("Probe of %s failed: %s", path, e)
			return True
		finally:
			probe.close()

	def accept(
		self, endpoint: BoundEndpoint, timeout: float | None = None
	) -> UnixConnection | None:
		server_socket = endpoint.resource
		if server_socket is None:
			raise OSError(f"endpoint {endpoint.name} is closed")
		server_socket.settimeout(timeout)
		try:
			client_socket, _ = server_socket.accept()
		except socket.timeout:
			return None
		client_socket.settimeout(self.read_timeout)
		return UnixConnection(client_socket)

	def connect(self, name: str, timeout: float) -> UnixConnection:
		path = self.endpoint_address(name)
		if not os.path.exists(path):
			raise ConnectError(f"no listener on channel {name}")
		client_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
		client_socket.settimeout(timeout)
		try:
			client_socket.connect(path)
		except socket.timeout as e:
			client_socket.close()
			raise ConnectTimeoutError(
				f"channel {name} did not answer within {timeout} seconds"
			) from e
		except OSError as e:
			client_socket.close()
			raise ConnectError(f"cannot connect to channel {name}: {e}") from e
		return UnixConnection(client_socket)

	def close_listener(self, endpoint: BoundEndpoint) -> None:
		server_socket = endpoint.resource
		if server_socket is None:
			return
		endpoint.resource = None
		try:
			server_socket.close()
		except OSError as e:
			log.debug("Error closing socket %s: %s", endpoint.address, e)
		try:
			# the file may belong to a newer binding of the same name
			if os.stat(endpoint.address).st_ino == endpoint.identity:
				os.unlink(endpoint.address)
		except FileNotFoundError:
			pass
		except OSError as e:
			log.warning("Cannot remove socket file %s: %s", endpoint.address, e)
		if endpoint.lock is not None:
			lock_file, endpoint.lock = endpoint.lock, None
			lock_file.close()
		log.debug("Unix socket %s closed", endpoint.address)
