"""Windows-specific transport using named pipes.

A listener owns a single pipe instance created with
FILE_FLAG_FIRST_PIPE_INSTANCE, so a second process trying to listen under
the same name fails instead of silently sharing the channel. The instance
is disconnected and reused between clients and only closed on shutdown.
It is opened for overlapped I/O so waiting for a client and reading its
message both honour a timeout.
"""

from __future__ import annotations

import logging
import time

import pywintypes
import win32event
import win32file
import win32pipe
import winerror

from ideswitcher.consts import MAX_MESSAGE_SIZE

from .abstract_transport import AbstractTransport, BoundEndpoint, Connection
from .errors import BindError, ConnectError, ConnectTimeoutError, DecodeError

log = logging.getLogger(__name__)

# not exported by win32file
FILE_FLAG_FIRST_PIPE_INSTANCE = 0x00080000


def new_overlapped() -> pywintypes.OVERLAPPED:
	"""Return an OVERLAPPED structure with its own manual-reset event."""
	overlapped = pywintypes.OVERLAPPED()
	overlapped.hEvent = win32event.CreateEvent(None, True, False, None)
	return overlapped


def wait_overlapped(
	handle, overlapped: pywintypes.OVERLAPPED, timeout: float | None
) -> int:
	"""Wait for a pending overlapped operation.

	Args:
		handle: Handle the operation was started on
		overlapped: Structure given to the operation
		timeout: Seconds to wait, None waits forever

	Returns:
		The number of bytes transferred

	Raises:
		TimeoutError: If the operation did not complete in time, it is cancelled
		pywintypes.error: If the operation failed
	"""
	milliseconds = (
		win32event.INFINITE if timeout is None else max(0, int(timeout * 1000))
	)
	result = win32event.WaitForSingleObject(overlapped.hEvent, milliseconds)
	if result != win32event.WAIT_TIMEOUT:
		return win32file.GetOverlappedResult(handle, overlapped, False)
	win32file.CancelIo(handle)
	try:
		# the operation may have completed before it was cancelled
		return win32file.GetOverlappedResult(handle, overlapped, True)
	except pywintypes.error as e:
		if e.winerror == winerror.ERROR_OPERATION_ABORTED:
			raise TimeoutError(
				f"pipe operation timed out after {timeout} seconds"
			) from e
		raise


class PipeServerConnection(Connection):
	"""Server side of a connected pipe instance."""

	PIPE_BUFFER_SIZE = 65536

	def __init__(self, pipe_handle, read_timeout: float | None = None):
		"""Initialize the connection.

		Args:
			pipe_handle: Handle of the connected pipe instance
			read_timeout: Seconds the client may take to send its message
		"""
		self.pipe_handle = pipe_handle
		self.read_timeout = read_timeout
		self.connected = True

	def read_all(self, max_size: int = MAX_MESSAGE_SIZE) -> bytes:
		chunks = []
		size = 0
		deadline = (
			None
			if self.read_timeout is None
			else time.monotonic() + self.read_timeout
		)
		while True:
			remaining = None if deadline is None else deadline - time.monotonic()
			if remaining is not None and remaining <= 0:
				raise TimeoutError("pipe client did not finish its message")
			data = self._read_chunk(remaining)
			if not data:
				break
			size += len(data)
			if size > max_size:
				raise DecodeError(f"message larger than {max_size} bytes")
			chunks.append(data)
		return b"".join(chunks)

	def _read_chunk(self, timeout: float | None) -> bytes:
		"""Read the next chunk, an empty result ends the message."""
		overlapped = new_overlapped()
		buffer = win32file.AllocateReadBuffer(self.PIPE_BUFFER_SIZE)
		try:
			win32file.ReadFile(self.pipe_handle, buffer, overlapped)
			count = wait_overlapped(self.pipe_handle, overlapped, timeout)
		except pywintypes.error as e:
			# the client closed its handle: end of message
			if e.winerror == winerror.ERROR_BROKEN_PIPE:
				return b""
			raise OSError(f"error reading from pipe: {e}") from e
		return bytes(buffer[:count])

	def write(self, data: bytes) -> None:
		raise OSError("inbound pipe instances are read only")

	def close_write(self) -> None:
		pass

	def set_timeout(self, timeout: float | None) -> None:
		self.read_timeout = timeout

	def close(self) -> None:
		if not self.connected:
			return
		self.connected = False
		try:
			win32pipe.DisconnectNamedPipe(self.pipe_handle)
		except pywintypes.error as e:
			log.debug("Error disconnecting pipe client: %s", e)


class PipeClientConnection(Connection):
	"""Client side of a pipe, opened for writing."""

	def __init__(self, pipe_handle):
		"""Initialize the connection.

		Args:
			pipe_handle: Handle returned by CreateFile
		"""
		self.pipe_handle = pipe_handle

	def read_all(self, max_size: int = MAX_MESSAGE_SIZE) -> bytes:
		raise OSError("outbound pipe connections are write only")

	def write(self, data: bytes) -> None:
		try:
			win32file.WriteFile(self.pipe_handle, data)
		except pywintypes.error as e:
			raise OSError(f"error writing to pipe: {e}") from e

	def close_write(self) -> None:
		# a pipe client has no half-close, closing the handle ends the message
		self.close()

	def set_timeout(self, timeout: float | None) -> None:
		pass

	def close(self) -> None:
		if self.pipe_handle is None:
			return
		pipe_handle, self.pipe_handle = self.pipe_handle, None
		try:
			win32file.CloseHandle(pipe_handle)
		except pywintypes.error as e:
			log.debug("Error closing pipe handle: %s", e)


class WindowsTransport(AbstractTransport):
	"""Windows-specific transport using named pipes."""

	PIPE_BUFFER_SIZE = 65536

	def __init__(self, read_timeout: float = 5.0):
		"""Initialize the Windows transport.

		Args:
			read_timeout: Seconds an accepted client may take to send its message
		"""
		self.read_timeout = read_timeout

	def endpoint_address(self, name: str) -> str:
		return f"\\\\.\\pipe\\{name}"

	def listen(self, name: str) -> BoundEndpoint:
		address = self.endpoint_address(name)
		try:
			pipe_handle = win32pipe.CreateNamedPipe(
				address,
				win32pipe.PIPE_ACCESS_INBOUND
				| win32file.FILE_FLAG_OVERLAPPED
				| FILE_FLAG_FIRST_PIPE_INSTANCE,
				win32pipe.PIPE_TYPE_BYTE
				| win32pipe.PIPE_READMODE_BYTE
				| win32pipe.PIPE_WAIT,
				1,  # a single instance keeps the name exclusive
				self.PIPE_BUFFER_SIZE,
				self.PIPE_BUFFER_SIZE,
				0,
				None,
			)
		except pywintypes.error as e:
			if e.winerror in (
				winerror.ERROR_ACCESS_DENIED,
				winerror.ERROR_PIPE_BUSY,
			):
				raise BindError(f"channel {name} is already in use") from e
			raise BindError(f"cannot create pipe {address}: {e}") from e
		if pipe_handle == win32file.INVALID_HANDLE_VALUE:
			raise BindError(f"cannot create pipe {address}")
		log.debug("Named pipe listening on %s", address)
		return BoundEndpoint(name=name, address=address, resource=pipe_handle)

	def accept(
		self, endpoint: BoundEndpoint, timeout: float | None = None
	) -> PipeServerConnection | None:
		pipe_handle = endpoint.resource
		if pipe_handle is None:
			raise OSError(f"endpoint {endpoint.name} is closed")
		overlapped = new_overlapped()
		try:
			result = win32pipe.ConnectNamedPipe(pipe_handle, overlapped)
			if result == winerror.ERROR_IO_PENDING:
				wait_overlapped(pipe_handle, overlapped, timeout)
		except TimeoutError:
			return None
		except pywintypes.error as e:
			# a client connected, and maybe already left, before this call
			if e.winerror not in (
				winerror.ERROR_PIPE_CONNECTED,
				winerror.ERROR_NO_DATA,
			):
				raise OSError(f"error waiting for pipe client: {e}") from e
		return PipeServerConnection(pipe_handle, self.read_timeout)

	def connect(self, name: str, timeout: float) -> PipeClientConnection:
		address = self.endpoint_address(name)
		deadline = time.monotonic() + timeout
		while True:
			try:
				pipe_handle = win32file.CreateFile(
					address,
					win32file.GENERIC_WRITE,
					0,
					None,
					win32file.OPEN_EXISTING,
					0,
					None,
				)
				return PipeClientConnection(pipe_handle)
			except pywintypes.error as e:
				if e.winerror != winerror.ERROR_PIPE_BUSY:
					raise ConnectError(
						f"cannot connect to channel {name}: {e}"
					) from e
			remaining = deadline - time.monotonic()
			if remaining <= 0:
				raise ConnectTimeoutError(
					f"channel {name} did not answer within {timeout} seconds"
				)
			log.debug("Pipe %s busy, waiting %.2f seconds", address, remaining)
			try:
				win32pipe.WaitNamedPipe(address, max(1, int(remaining * 1000)))
			except pywintypes.error as e:
				if e.winerror == winerror.ERROR_SEM_TIMEOUT:
					raise ConnectTimeoutError(
						f"channel {name} did not answer within {timeout} seconds"
					) from e
				raise ConnectError(
					f"cannot connect to channel {name}: {e}"
				) from e

	def close_listener(self, endpoint: BoundEndpoint) -> None:
		pipe_handle = endpoint.resource
		if pipe_handle is None:
			return
		endpoint.resource = None
		try:
			win32file.CloseHandle(pipe_handle)
		except pywintypes.error as e:
			log.debug("Error closing pipe %s: %s", endpoint.address, e)
		log.debug("Named pipe %s closed", endpoint.address)
