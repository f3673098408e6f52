"""Setup file for the project."""

from setuptools import find_packages, setup

setup(
	name="ideswitcher",
	version="1.0.0",
	description="Hand the current file and cursor position over between a text editor and an IDE",
	packages=find_packages(include=["ideswitcher", "ideswitcher.*"]),
	python_requires=">=3.11",
	install_requires=[
		"platformdirs>=4.0",
		"psutil>=5.9",
		"pydantic>=2.7",
		"pydantic-settings>=2.3",
		"pywin32>=306; sys_platform == 'win32'",
		"pyyaml>=6.0",
	],
	extras_require={"test": ["pytest>=8.0"]},
	entry_points={"console_scripts": ["ideswitcher=ideswitcher.__main__:main"]},
)
