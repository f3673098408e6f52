"""Inter-process communication module for ideswitcher.

This module provides the switch request codec and the platform-specific
transports carrying it between the editor and the IDE.
"""

import sys

from .abstract_transport import AbstractTransport, BoundEndpoint, Connection
from .errors import (
	ActionError,
	BindError,
	ConnectError,
	ConnectTimeoutError,
	DecodeError,
	IdeSwitcherError,
	NoActiveDocumentError,
)
from .ipc_model import SwitchRequest, decode, encode

if sys.platform == "win32":
	from .windows_transport import WindowsTransport as PlatformTransport
else:
	from .unix_transport import UnixTransport as PlatformTransport

__all__ = [
	"AbstractTransport",
	"ActionError",
	"BindError",
	"BoundEndpoint",
	"ConnectError",
	"ConnectTimeoutError",
	"Connection",
	"DecodeError",
	"decode",
	"encode",
	"IdeSwitcherError",
	"NoActiveDocumentError",
	"PlatformTransport",
	"SwitchRequest",
]
