"""Jukebox: a Discord bot that queues, transcodes and plays remote audio."""

__version__ = "1.0.0"
