"""Tests for the Unix domain socket transport.

This module contains tests for the socket transport used for inter-process
communication on Unix/Linux systems.
"""

import os
import socket
import sys
import threading

import pytest

from ideswitcher.ipc import BindError, ConnectError, DecodeError

pytestmark = pytest.mark.skipif(
	sys.platform == "win32", reason="Unix IPC only works on Unix/Linux"
)


@pytest.fixture
def endpoint(transport, channel_name):
	"""Provide a bound endpoint closed after the test."""
	endpoint = transport.listen(channel_name)
	yield endpoint
	transport.close_listener(endpoint)


def send_in_thread(transport, channel_name, chunks):
	"""Connect and send chunks from another thread, then half-close."""

	def send():
		with transport.connect(channel_name, 2.0) as connection:
			for chunk in chunks:
				connection.write(chunk)
			connection.close_write()

	thread = threading.Thread(target=send, daemon=True)
	thread.start()
	return thread


def test_socket_file_lifecycle(transport, channel_name):
	"""The socket file exists while listening and is removed on close."""
	socket_path = transport.endpoint_address(channel_name)
	assert not os.path.exists(socket_path)

	endpoint = transport.listen(channel_name)
	assert os.path.exists(socket_path)
	assert os.stat(socket_path).st_uid == os.getuid()

	transport.close_listener(endpoint)
	assert not os.path.exists(socket_path)
	assert endpoint.closed


def test_close_listener_twice(transport, channel_name):
	"""Closing an endpoint twice is allowed."""
	endpoint = transport.listen(channel_name)
	transport.close_listener(endpoint)
	transport.close_listener(endpoint)


def test_message_assembled_from_partial_writes(transport, channel_name, endpoint):
	"""Bytes are accumulated until the peer half-closes."""
	thread = send_in_thread(
		transport, channel_name, [b'{"action": ', b'"switch", ', b'"filePath": "/a"}']
	)
	connection = transport.accept(endpoint, 2.0)
	assert connection is not None
	with connection:
		assert connection.read_all() == b'{"action": "switch", "filePath": "/a"}'
	thread.join(2.0)


def test_accept_timeout(transport, endpoint):
	"""Accept returns None when nobody connects."""
	assert transport.accept(endpoint, 0.1) is None


def test_oversized_message(transport, channel_name, endpoint):
	"""A payload above the limit is rejected."""
	thread = send_in_thread(transport, channel_name, [b"x" * 2048])
	connection = transport.accept(endpoint, 2.0)
	with connection:
		with pytest.raises(DecodeError):
			connection.read_all(max_size=1024)
	thread.join(2.0)


def test_listen_twice_raises_bind_error(transport, channel_name, endpoint):
	"""Only one listener can own a channel name."""
	with pytest.raises(BindError):
		transport.listen(channel_name)


def test_stale_socket_file_is_replaced(transport, channel_name):
	"""A socket file left by a dead process does not prevent binding."""
	socket_path = transport.endpoint_address(channel_name)
	os.makedirs(os.path.dirname(socket_path), exist_ok=True)
	stale = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
	stale.bind(socket_path)
	stale.close()
	assert os.path.exists(socket_path)

	endpoint = transport.listen(channel_name)
	try:
		assert not endpoint.closed
	finally:
		transport.close_listener(endpoint)


def test_name_locked_while_socket_file_missing(transport, channel_name):
	"""The name stays owned even when its socket file disappears."""
	endpoint = transport.listen(channel_name)
	try:
		os.unlink(endpoint.address)
		with pytest.raises(BindError):
			transport.listen(channel_name)
	finally:
		transport.close_listener(endpoint)


def test_concurrent_listen_on_stale_socket(transport, channel_name):
	"""Listeners racing on a stale socket file end with a single owner."""
	socket_path = transport.endpoint_address(channel_name)
	os.makedirs(os.path.dirname(socket_path), exist_ok=True)
	stale = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
	stale.bind(socket_path)
	stale.close()
	barrier = threading.Barrier(8)
	endpoints = []
	failures = []

	def listen():
		barrier.wait(2.0)
		try:
			endpoints.append(transport.listen(channel_name))
		except BindError as e:
			failures.append(e)

	threads = [threading.Thread(target=listen) for _ in range(8)]
	for thread in threads:
		thread.start()
	for thread in threads:
		thread.join(5.0)
	try:
		assert len(endpoints) == 1
		assert len(failures) == 7
		assert os.stat(socket_path).st_ino == endpoints[0].identity
	finally:
		for endpoint in endpoints:
			transport.close_listener(endpoint)


def test_close_keeps_foreign_socket_file(transport, channel_name):
	"""Closing an endpoint never removes a socket file it did not bind."""
	endpoint = transport.listen(channel_name)
	os.unlink(endpoint.address)
	foreign = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
	foreign.bind(endpoint.address)
	try:
		transport.close_listener(endpoint)
		assert os.path.exists(endpoint.address)
	finally:
		foreign.close()
		os.unlink(endpoint.address)


def test_lock_released_on_close(transport, channel_name):
	"""The lock file outlives the endpoint but no longer holds the name."""
	endpoint = transport.listen(channel_name)
	transport.close_listener(endpoint)

	assert endpoint.lock is None
	assert os.path.exists(transport.lock_path(channel_name))
	transport.close_listener(transport.listen(channel_name))


def test_connect_without_listener(transport, channel_name):
	"""Connecting to a channel nobody listens on fails."""
	with pytest.raises(ConnectError):
		transport.connect(channel_name, 1.0)


def test_connect_to_dead_socket_file(transport, channel_name):
	"""A leftover socket file is not a listener."""
	socket_path = transport.endpoint_address(channel_name)
	os.makedirs(os.path.dirname(socket_path), exist_ok=True)
	stale = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
	stale.bind(socket_path)
	stale.close()
	with pytest.raises(ConnectError):
		transport.connect(channel_name, 1.0)


def test_name_reusable_after_close(transport, channel_name):
	"""A closed endpoint releases its name for a new listener."""
	transport.close_listener(transport.listen(channel_name))
	endpoint = transport.listen(channel_name)
	transport.close_listener(endpoint)
