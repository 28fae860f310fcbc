"""Headless playback client for saxis robot motion programs."""

__version__ = "0.1.0"
