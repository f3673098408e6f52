"""Tests for the Windows named pipe transport."""

import sys
import threading
import time

import pytest

from ideswitcher.ipc import BindError, ConnectError

pytestmark = pytest.mark.skipif(
	sys.platform != "win32", reason="Named pipes only exist on Windows"
)

if sys.platform == "win32":
	from ideswitcher.ipc.windows_transport import WindowsTransport


def test_endpoint_address(transport):
	"""Channel names map to the local pipe namespace."""
	assert transport.endpoint_address("IDESwitcher_ToDelphi") == (
		"\\\\.\\pipe\\IDESwitcher_ToDelphi"
	)


def test_listen_twice_raises_bind_error(transport, channel_name):
	"""Only one listener can own a pipe name."""
	endpoint = transport.listen(channel_name)
	try:
		with pytest.raises(BindError):
			transport.listen(channel_name)
	finally:
		transport.close_listener(endpoint)


def test_connect_without_listener(transport, channel_name):
	"""Connecting to a pipe nobody listens on fails."""
	with pytest.raises(ConnectError):
		transport.connect(channel_name, 1.0)


def test_message_until_client_closes(transport, channel_name):
	"""The message ends when the client closes its handle."""
	endpoint = transport.listen(channel_name)

	def send():
		connection = transport.connect(channel_name, 2.0)
		connection.write(b'{"action": ')
		connection.write(b'"switch"}')
		connection.close_write()

	thread = threading.Thread(target=send, daemon=True)
	thread.start()
	try:
		with transport.accept(endpoint) as connection:
			assert connection.read_all() == b'{"action": "switch"}'
	finally:
		thread.join(2.0)
		transport.close_listener(endpoint)


def test_accept_timeout(transport, channel_name):
	"""Accept returns None when nobody connects."""
	endpoint = transport.listen(channel_name)
	try:
		assert transport.accept(endpoint, 0.1) is None
	finally:
		transport.close_listener(endpoint)


def test_silent_client_times_out(channel_name):
	"""A client that never closes its handle does not block the reader."""
	transport = WindowsTransport(read_timeout=0.3)
	endpoint = transport.listen(channel_name)
	client = transport.connect(channel_name, 2.0)
	try:
		client.write(b'{"action": ')
		connection = transport.accept(endpoint, 2.0)
		start = time.monotonic()
		with connection:
			with pytest.raises(TimeoutError):
				connection.read_all()
		assert time.monotonic() - start < 2.0
		# the instance is free again for the next client
		client.close()
		assert transport.accept(endpoint, 0.1) is None
	finally:
		client.close()
		transport.close_listener(endpoint)
