"""Bring an application window to the foreground.

Window activation is a best-effort OS side effect. It is exposed as an
injectable capability so the dispatcher and the action handler never spawn
OS processes by themselves:
- Windows: top-level windows enumerated with pywin32, focused with the
  thread-attached SetForegroundWindow strategy
- X11: wmctrl
- macOS: System Events through osascript
"""

from __future__ import annotations

import abc
import fnmatch
import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Any

import psutil
from pydantic import BaseModel, Field

log = logging.getLogger(__name__)

# seconds allowed to an external window tool
COMMAND_TIMEOUT = 5.0


class WindowQuery(BaseModel):
	"""Identify the window of an application.

	A window matches when its process name is one of process_names or its
	title matches one of the glob title_patterns, both case-insensitively.
	"""

	process_names: list[str] = Field(default_factory=list)
	title_patterns: list[str] = Field(default_factory=list)

	def matches(self, process_name: str, title: str) -> bool:
		"""Check whether a window matches the query.

		Args:
			process_name: Name of the process owning the window
			title: Title of the window

		Returns:
			True if the window belongs to the queried application
		"""
		name = process_name.lower().removesuffix(".exe")
		names = {n.lower().removesuffix(".exe") for n in self.process_names}
		if name in names:
			return True
		title = title.lower()
		return any(
			fnmatch.fnmatchcase(title, pattern.lower())
			for pattern in self.title_patterns
		)


@dataclass
class WindowHandle:
	"""A window found by an activator."""

	window_id: Any
	pid: int
	title: str = ""


def get_process_name(pid: int) -> str:
	"""Return the name of a process, or an empty string if it is gone."""
	try:
		return psutil.Process(pid).name()
	except psutil.Error:
		return ""


class AbstractWindowActivator(abc.ABC):
	"""Find an application window and give it the input focus."""

	@abc.abstractmethod
	def find_window(self, query: WindowQuery) -> WindowHandle | None:
		"""Return the first window matching the query, if any."""

	@abc.abstractmethod
	def force_foreground(self, handle: WindowHandle) -> None:
		"""Restore the window, raise it and give it the input focus."""

	def activate(self, query: WindowQuery) -> bool:
		"""Bring the window matching the query to the foreground.

		Args:
			query: The application window to activate

		Returns:
			True if a window was found and activated
		"""
		handle = self.find_window(query)
		if handle is None:
			log.info("No window found for %s", query)
			return False
		self.force_foreground(handle)
		log.debug("Window %r (pid %d) activated", handle.title, handle.pid)
		return True


class NullWindowActivator(AbstractWindowActivator):
	"""Activator for platforms without window management."""

	def find_window(self, query: WindowQuery) -> WindowHandle | None:
		return None

	def force_foreground(self, handle: WindowHandle) -> None:
		pass


class WindowsWindowActivator(AbstractWindowActivator):
	"""Windows activator using pywin32."""

	def find_window(self, query: WindowQuery) -> WindowHandle | None:
		import win32gui
		import win32process

		found = []

		def enum_callback(hwnd, _):
			if not win32gui.IsWindowVisible(hwnd):
				return True
			title = win32gui.GetWindowText(hwnd)
			_, pid = win32process.GetWindowThreadProcessId(hwnd)
			if query.matches(get_process_name(pid), title):
				found.append(WindowHandle(window_id=hwnd, pid=pid, title=title))
			return True

		win32gui.EnumWindows(enum_callback, None)
		return found[0] if found else None

	def force_foreground(self, handle: WindowHandle) -> None:
		import win32api
		import win32gui
		import win32process

		hwnd = handle.window_id
		foreground_thread, _ = win32process.GetWindowThreadProcessId(
			win32gui.GetForegroundWindow()
		)
		current_thread = win32api.GetCurrentThreadId()
		# windows only lets the thread owning the input focus change it
		attach = bool(foreground_thread) and foreground_thread != current_thread
		if attach:
			win32process.AttachThreadInput(
				foreground_thread, current_thread, True
			)
		try:
			self._raise_window(hwnd)
		finally:
			if attach:
				win32process.AttachThreadInput(
					foreground_thread, current_thread, False
				)

	@staticmethod
	def _raise_window(hwnd) -> None:
		import win32con
		import win32gui

		win32gui.BringWindowToTop(hwnd)
		win32gui.ShowWindow(hwnd, win32con.SW_RESTORE)
		win32gui.SetForegroundWindow(hwnd)


class X11WindowActivator(AbstractWindowActivator):
	"""X11 activator using wmctrl."""

	def find_window(self, query: WindowQuery) -> WindowHandle | None:
		if not shutil.which("wmctrl"):
			log.warning("wmctrl is not installed, cannot activate windows")
			return None
		result = subprocess.run(
			["wmctrl", "-lp"],
			capture_output=True,
			text=True,
			timeout=COMMAND_TIMEOUT,
		)
		if result.returncode != 0:
			log.warning("wmctrl failed: %s", result.stderr.strip())
			return None
		for line in result.stdout.splitlines():
			# id desktop pid host title
			parts = line.split(None, 4)
			if len(parts) < 4:
				continue
			try:
				pid = int(parts[2])
			except ValueError:
				continue
			title = parts[4] if len(parts) == 5 else ""
			if query.matches(get_process_name(pid), title):
				return WindowHandle(window_id=parts[0], pid=pid, title=title)
		return None

	def force_foreground(self, handle: WindowHandle) -> None:
		subprocess.run(
			["wmctrl", "-i", "-a", handle.window_id],
			check=True,
			capture_output=True,
			timeout=COMMAND_TIMEOUT,
		)


class MacWindowActivator(AbstractWindowActivator):
	"""macOS activator using System Events.

	Window titles are not available without accessibility permissions, only
	process names are matched.
	"""

	def find_window(self, query: WindowQuery) -> WindowHandle | None:
		for process in psutil.process_iter(["pid", "name"]):
			name = process.info["name"] or ""
			if query.matches(name, ""):
				return WindowHandle(
					window_id=process.info["pid"],
					pid=process.info["pid"],
					title=name,
				)
		return None

	def force_foreground(self, handle: WindowHandle) -> None:
		script = (
			'tell application "System Events" to set frontmost of '
			f"(first process whose unix id is {handle.pid}) to true"
		)
		subprocess.run(
			["osascript", "-e", script],
			check=True,
			capture_output=True,
			timeout=COMMAND_TIMEOUT,
		)


def get_window_activator() -> AbstractWindowActivator:
	"""Return the window activator of the running platform."""
	if sys.platform == "win32":
		return WindowsWindowActivator()
	if sys.platform == "darwin":
		return MacWindowActivator()
	if shutil.which("wmctrl"):
		return X11WindowActivator()
	log.debug("No window manager tool found, window activation disabled")
	return NullWindowActivator()
