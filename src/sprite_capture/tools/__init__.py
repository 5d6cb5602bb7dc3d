"""Tool packages — each sub-package exposes a ``BaseTool`` subclass in ``tool.py``."""
