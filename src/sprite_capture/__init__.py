"""Sprite Capture — render animation clips frame by frame and pack them into sprite sheets."""

__version__ = "0.1.0"
