"""global variables for the ideswitcher application.

This module contains global variables that are used throughout the application, such as the user data path of portable installations.
"""

import sys
from pathlib import Path

# base directory of the application executable
base_path = Path(
	sys.executable if getattr(sys, "frozen", False) else __file__
).parent

# configuration and logs inside the base directory (useful for portable installations)
user_data_path = (
	base_path / Path("user_data")
	if (base_path / "user_data").exists()
	else None
)
