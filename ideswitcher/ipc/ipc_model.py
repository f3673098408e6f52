"""IPC message model for ideswitcher inter-process communication.

This module defines the Pydantic model exchanged between the editor and the
IDE, and the codec turning it into the bytes carried by one connection.
"""

import os
from datetime import datetime, timezone
from typing import Any

from pydantic import (
	BaseModel,
	ConfigDict,
	Field,
	ValidationError,
	field_validator,
)

from ideswitcher.consts import SWITCH_ACTION

from .errors import DecodeError


class SwitchRequest(BaseModel):
	"""Request asking the peer to open a file at a cursor position.

	Line and column are 1-based on the wire. A receiver clamps a 0 it gets
	from a lenient sender to the first position. The timestamp is kept as sent,
	it only serves diagnostics.
	"""

	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	action: str = Field(min_length=1)
	file_path: str = Field(alias="filePath", min_length=1)
	line: int = Field(default=1, ge=0)
	column: int = Field(default=1, ge=0)
	source: str = Field(default="")
	timestamp: str = Field(
		default_factory=lambda: datetime.now(timezone.utc).isoformat()
	)
	pid: int | None = Field(default=None)

	@field_validator("timestamp", mode="before")
	@classmethod
	def timestamp_as_text(cls, value: Any) -> str:
		return value if isinstance(value, str) else str(value)

	@classmethod
	def from_editor_position(
		cls, file_path: str, line: int, column: int, source: str
	) -> "SwitchRequest":
		"""Build a switch request from a 0-based editor position.

		Args:
			file_path: Path of the document being edited
			line: 0-based cursor line
			column: 0-based cursor column
			source: Name of the sending side

		Returns:
			The switch request with 1-based coordinates
		"""
		return cls(
			action=SWITCH_ACTION,
			file_path=file_path,
			line=line + 1,
			column=column + 1,
			source=source,
			pid=os.getpid(),
		)

	def editor_position(self) -> tuple[int, int]:
		"""Return the 0-based editor position of this request."""
		return max(0, self.line - 1), max(0, self.column - 1)


def encode(request: SwitchRequest) -> bytes:
	"""Serialize a switch request to UTF-8 JSON.

	Args:
		request: The request to serialize

	Returns:
		The encoded payload
	"""
	return request.model_dump_json(by_alias=True, exclude_none=True).encode(
		"utf-8"
	)


def decode(data: bytes) -> SwitchRequest:
	"""Parse the payload of one connection.

	Args:
		data: Every byte received before the peer closed its write side

	Returns:
		The decoded switch request

	Raises:
		DecodeError: If the payload is not a structurally valid request
	"""
	try:
		text = data.decode("utf-8")
	except UnicodeDecodeError as e:
		raise DecodeError(f"payload is not valid UTF-8: {e}") from e
	try:
		return SwitchRequest.model_validate_json(text)
	except ValidationError as e:
		raise DecodeError(f"invalid switch request: {e}") from e
