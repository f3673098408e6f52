"""Constant values used in the application."""

import os
import tempfile

# application name
APP_NAME = "ideswitcher"

# application author
APP_AUTHOR = "ideswitcher"

# ideswitcher temp directory, holds the unix domain sockets
TMP_DIR = os.path.join(tempfile.gettempdir(), "ideswitcher")

# channel read by the IDE process (editor -> IDE)
CHANNEL_TO_IDE = "IDESwitcher_ToDelphi"

# channel read by the text editor process (IDE -> editor)
CHANNEL_TO_EDITOR = "IDESwitcher_ToVSCode"

# the only message kind handled by the receiving side
SWITCH_ACTION = "switch"

# seconds allowed for a whole outbound exchange
DEFAULT_CONNECT_TIMEOUT = 5.0

# seconds between two bind attempts of the inbound listener
DEFAULT_RETRY_DELAY = 5.0

# seconds a blocking accept waits before checking the stop flag
ACCEPT_POLL_INTERVAL = 1.0

# largest payload accepted on a single connection
MAX_MESSAGE_SIZE = 1024 * 1024

# default keyboard shortcut of the switch command (display only)
DEFAULT_SHORTCUT = "ctrl+shift+d"
