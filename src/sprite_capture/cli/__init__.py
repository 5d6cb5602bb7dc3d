"""Command line interface for Sprite Capture."""
