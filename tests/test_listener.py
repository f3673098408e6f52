"""Tests for the inbound listener.

These tests run a real listener on the platform transport and talk to it
through real connections.
"""

import queue
import threading
import time

import pytest

from ideswitcher.ipc import SwitchRequest, encode
from ideswitcher.listener import (
	InboundListener,
	ListenerState,
	start_listener,
	stop_listener,
)


def switch_request(file_path, **kwargs):
	"""Build a switch request for a file."""
	return SwitchRequest(action="switch", file_path=file_path, **kwargs)


@pytest.fixture
def received():
	"""Queue collecting the requests handed to the callback."""
	return queue.Queue()


@pytest.fixture
def listener(transport, channel_name, received):
	"""Start a listener with a short retry delay and stop it after the test."""
	listener = start_listener(
		transport,
		channel_name,
		received.put,
		retry_delay=0.2,
		poll_interval=0.1,
	)
	assert listener.wait_until_listening(2.0)
	yield listener
	stop_listener(listener)


def send_raw(transport, channel_name, payload):
	"""Send one payload and half-close."""
	with transport.connect(channel_name, 2.0) as connection:
		connection.write(payload)
		connection.close_write()


def test_receives_switch_request(transport, channel_name, listener, received):
	"""A request sent by the peer reaches the callback."""
	request = switch_request("/tmp/x.go", line=10, column=3, source="A")

	send_raw(transport, channel_name, encode(request))

	assert received.get(timeout=2.0) == request
	assert listener.state in (ListenerState.LISTENING, ListenerState.DISPATCHING)


def test_malformed_payload_then_valid_one(
	transport, channel_name, listener, received
):
	"""A malformed payload is dropped and the listener keeps serving."""
	send_raw(transport, channel_name, b'{"action": "switch", "filePa')
	send_raw(transport, channel_name, b"\x00\x01garbage")
	request = switch_request("/tmp/ok.go")
	send_raw(transport, channel_name, encode(request))

	assert received.get(timeout=2.0) == request
	assert received.empty()
	assert listener.is_alive()


def test_payload_without_action_dropped(
	transport, channel_name, listener, received
):
	"""A request missing its action is never handed to the callback."""
	send_raw(
		transport,
		channel_name,
		b'{"filePath": "/tmp/x.go", "line": 10, "column": 3}',
	)
	request = switch_request("/tmp/ok.go")
	send_raw(transport, channel_name, encode(request))

	assert received.get(timeout=2.0) == request
	assert received.empty()


def test_empty_connection_ignored(transport, channel_name, listener, received):
	"""A connection closed without payload is not a request."""
	send_raw(transport, channel_name, b"")
	request = switch_request("/tmp/ok.go")
	send_raw(transport, channel_name, encode(request))

	assert received.get(timeout=2.0) == request


def test_callback_error_does_not_stop_listener(transport, channel_name):
	"""A failing handler does not affect the next request."""
	calls = []

	def failing_callback(request):
		calls.append(request)
		raise RuntimeError("handler failed")

	listener = start_listener(
		transport,
		channel_name,
		failing_callback,
		call_after=lambda func, *args: func(*args),
		poll_interval=0.1,
	)
	try:
		assert listener.wait_until_listening(2.0)
		send_raw(transport, channel_name, encode(switch_request("/a")))
		send_raw(transport, channel_name, encode(switch_request("/b")))
		deadline = time.monotonic() + 2.0
		while len(calls) < 2 and time.monotonic() < deadline:
			time.sleep(0.05)
		assert [request.file_path for request in calls] == ["/a", "/b"]
	finally:
		stop_listener(listener)


def test_callback_does_not_block_accept(transport, channel_name):
	"""The next connection is accepted while the handler is still running."""
	release = threading.Event()
	started = queue.Queue()

	def slow_callback(request):
		started.put(request.file_path)
		release.wait(5.0)

	listener = start_listener(
		transport, channel_name, slow_callback, poll_interval=0.1
	)
	try:
		assert listener.wait_until_listening(2.0)
		send_raw(transport, channel_name, encode(switch_request("/a")))
		send_raw(transport, channel_name, encode(switch_request("/b")))
		assert {started.get(timeout=2.0), started.get(timeout=2.0)} == {"/a", "/b"}
	finally:
		release.set()
		stop_listener(listener)


def test_bind_error_retried_until_name_is_free(transport, channel_name, received):
	"""A listener started while the name is taken binds once it is freed."""
	holder = transport.listen(channel_name)
	listener = start_listener(
		transport,
		channel_name,
		received.put,
		retry_delay=0.1,
		poll_interval=0.1,
	)
	try:
		deadline = time.monotonic() + 2.0
		while listener.bind_failures == 0 and time.monotonic() < deadline:
			time.sleep(0.02)
		assert listener.bind_failures >= 1
		assert listener.is_alive()
		assert not listener.wait_until_listening(0.05)

		transport.close_listener(holder)

		assert listener.wait_until_listening(2.0)
		request = switch_request("/tmp/x.go")
		send_raw(transport, channel_name, encode(request))
		assert received.get(timeout=2.0) == request
	finally:
		transport.close_listener(holder)
		stop_listener(listener)


def test_stop_releases_name(transport, channel_name, listener):
	"""After stop a new listener can bind the same name."""
	stop_listener(listener)

	assert listener.state == ListenerState.STOPPED
	assert not listener.is_alive()
	endpoint = transport.listen(channel_name)
	transport.close_listener(endpoint)


def test_stop_is_idempotent(listener):
	"""Stopping twice is allowed."""
	listener.stop()
	listener.stop()
	assert listener.state == ListenerState.STOPPED


def test_stop_during_retry_backoff(transport, channel_name, received):
	"""Stop interrupts the backoff delay."""
	holder = transport.listen(channel_name)
	listener = start_listener(
		transport, channel_name, received.put, retry_delay=30.0
	)
	try:
		deadline = time.monotonic() + 2.0
		while listener.bind_failures == 0 and time.monotonic() < deadline:
			time.sleep(0.02)
		start = time.monotonic()
		listener.stop()
		assert time.monotonic() - start < 5.0
		assert not listener.is_alive()
	finally:
		transport.close_listener(holder)


def test_stop_never_started(transport, channel_name, received):
	"""A listener that never ran can be stopped."""
	listener = InboundListener(transport, channel_name, received.put)
	listener.stop()
	assert listener.state == ListenerState.STOPPED
