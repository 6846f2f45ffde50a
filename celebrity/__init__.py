"""Authoritative game server for the Celebrity party game."""

__version__ = "0.1.0"
