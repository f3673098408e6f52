"""Common test fixtures for ideswitcher."""

import shutil
import sys
import tempfile
import threading
import uuid

import pytest

from ideswitcher.host import Document, HostEditor, MessageKind
from ideswitcher.ipc import ActionError
from ideswitcher.window_activation import (
	AbstractWindowActivator,
	WindowHandle,
	WindowQuery,
)


class FakeDocument(Document):
	"""In-memory document recording saves."""

	def __init__(self, path, line=0, column=0, dirty=False):
		self._path = path
		self.line = line
		self.column = column
		self.dirty = dirty
		self.save_count = 0

	@property
	def path(self):
		return self._path

	@property
	def is_dirty(self):
		return self.dirty

	def save(self):
		self.save_count += 1
		self.dirty = False

	def get_cursor_position(self):
		return self.line, self.column


class FakeHost(HostEditor):
	"""Host editor recording every call made by the bridge."""

	def __init__(self, active_document=None, missing_files=()):
		self.active_document = active_document
		self.missing_files = set(missing_files)
		self.calls = []
		self.messages = []
		self.focused = threading.Event()
		self.message_shown = threading.Event()

	def get_active_document(self):
		return self.active_document

	def open_document(self, path):
		self.calls.append(("open", path))
		if path in self.missing_files:
			raise ActionError(f"{path} does not exist")
		self.active_document = FakeDocument(path)
		return self.active_document

	def set_cursor_position(self, document, line, column):
		self.calls.append(("cursor", document.path, line, column))

	def reveal_position(self, document, line, column):
		self.calls.append(("reveal", document.path, line, column))

	def focus_editor_window(self):
		self.calls.append(("focus",))
		self.focused.set()

	def show_user_message(self, kind: MessageKind, text: str):
		self.messages.append((kind, text))
		self.message_shown.set()


class RecordingWindowActivator(AbstractWindowActivator):
	"""Window activation test double."""

	def __init__(self, window=None, error=None):
		self.window = window
		self.error = error
		self.queries = []
		self.foregrounded = []

	def find_window(self, query: WindowQuery):
		self.queries.append(query)
		if self.error is not None:
			raise self.error
		return self.window

	def force_foreground(self, handle: WindowHandle):
		self.foregrounded.append(handle)


@pytest.fixture
def fake_host():
	"""Return a host without active document."""
	return FakeHost()


@pytest.fixture
def window_activator():
	"""Return an activator finding one window."""
	return RecordingWindowActivator(
		window=WindowHandle(window_id=42, pid=4242, title="peer")
	)


@pytest.fixture
def channel_name():
	"""Provide a unique channel name."""
	return f"test_ideswitcher_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def socket_dir():
	"""Provide a short directory for unix domain sockets."""
	path = tempfile.mkdtemp(prefix="isw-")
	yield path
	shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def transport(socket_dir):
	"""Return the transport of the running platform."""
	if sys.platform == "win32":
		from ideswitcher.ipc.windows_transport import WindowsTransport

		return WindowsTransport()
	from ideswitcher.ipc.unix_transport import UnixTransport

	return UnixTransport(socket_dir)


@pytest.fixture
def host_factory():
	"""Return the fake host class, called with an active document."""
	return FakeHost


@pytest.fixture
def document_factory():
	"""Return the fake document class."""
	return FakeDocument


@pytest.fixture
def activator_factory():
	"""Return the recording window activator class."""
	return RecordingWindowActivator
