"""Duplicator: build and package players for several target platforms."""

from duplicator.__version__ import __version__
