import logging
from functools import cache
from pathlib import Path

from pydantic import BaseModel, Field

from ideswitcher.consts import (
	CHANNEL_TO_EDITOR,
	CHANNEL_TO_IDE,
	DEFAULT_CONNECT_TIMEOUT,
	DEFAULT_RETRY_DELAY,
	DEFAULT_SHORTCUT,
)
from ideswitcher.window_activation import WindowQuery

from .config_enums import EditorRole, LogLevelEnum
from .config_helper import (
	IdeSwitcherBaseSettings,
	get_settings_config_dict,
	save_config_file,
)

log = logging.getLogger(__name__)

config_file_name = "config.yml"


class GeneralSettings(BaseModel):
	log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO)
	role: EditorRole = Field(default=EditorRole.EDITOR)


class ChannelSettings(BaseModel):
	to_ide: str = Field(default=CHANNEL_TO_IDE, min_length=1)
	to_editor: str = Field(default=CHANNEL_TO_EDITOR, min_length=1)

	def inbound(self, role: EditorRole) -> str:
		"""Return the channel a process of the given role listens on."""
		if role == EditorRole.EDITOR:
			return self.to_editor
		return self.to_ide

	def outbound(self, role: EditorRole) -> str:
		"""Return the channel a process of the given role sends to."""
		return self.inbound(role.peer)


class SwitchSettings(BaseModel):
	auto_save: bool = Field(default=True)
	connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
	# informative only, the peer is never launched
	peer_executable: Path | None = Field(default=None)
	shortcut: str = Field(default=DEFAULT_SHORTCUT)


class ListenerSettings(BaseModel):
	enable: bool = Field(default=True)
	retry_delay: float = Field(default=DEFAULT_RETRY_DELAY, gt=0)
	open_command: str | None = Field(default=None)


class FocusSettings(BaseModel):
	editor: WindowQuery = Field(
		default_factory=lambda: WindowQuery(process_names=["Windsurf", "Code"])
	)
	ide: WindowQuery = Field(
		default_factory=lambda: WindowQuery(
			process_names=["bds"], title_patterns=["*Delphi*"]
		)
	)

	def query_for(self, role: EditorRole) -> WindowQuery:
		"""Return the window query of the given role."""
		if role == EditorRole.EDITOR:
			return self.editor
		return self.ide


class IdeSwitcherConfig(IdeSwitcherBaseSettings):
	model_config = get_settings_config_dict(config_file_name)

	general: GeneralSettings = Field(default_factory=GeneralSettings)
	channels: ChannelSettings = Field(default_factory=ChannelSettings)
	switch: SwitchSettings = Field(default_factory=SwitchSettings)
	listener: ListenerSettings = Field(default_factory=ListenerSettings)
	focus: FocusSettings = Field(default_factory=FocusSettings)

	def save(self):
		save_config_file(
			self.model_dump(
				mode="json",
				by_alias=True,
				exclude_defaults=True,
				exclude_none=True,
			),
			config_file_name,
		)


@cache
def get_ideswitcher_config() -> IdeSwitcherConfig:
	log.debug("Loading ideswitcher config")
	return IdeSwitcherConfig()
