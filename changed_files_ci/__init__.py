"""Resolve which files and directories a pull request or push touched."""

__version__ = "0.1.0"
