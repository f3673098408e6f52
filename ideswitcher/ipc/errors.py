"""Exceptions raised by the ideswitcher bridge.

Every failure of the bridge is an IdeSwitcherError so callers at a
component boundary can contain them with a single except clause.
"""


class IdeSwitcherError(Exception):
	"""Base class for all ideswitcher errors."""


class BindError(IdeSwitcherError):
	"""The channel name is already owned by another running listener."""


class ConnectError(IdeSwitcherError):
	"""The peer channel could not be reached."""


class ConnectTimeoutError(ConnectError, TimeoutError):
	"""The peer channel did not answer before the deadline."""


class DecodeError(IdeSwitcherError, ValueError):
	"""The received bytes are not a valid switch request."""


class ActionError(IdeSwitcherError):
	"""A received request could not be applied to the host editor."""


class NoActiveDocumentError(IdeSwitcherError):
	"""The switch command was triggered without an active document."""
