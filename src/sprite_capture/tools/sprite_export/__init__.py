"""Sprite Export tool — two-pass capture of an animation clip into a sprite sheet."""

from sprite_capture.tools.sprite_export.tool import SpriteExportTool

__all__ = ["SpriteExportTool"]
