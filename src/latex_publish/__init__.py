"""Installer for the latex-split and latex-merge command-line tools."""

__version__ = "1.0.0"
