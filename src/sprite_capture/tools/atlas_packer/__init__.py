"""Atlas Packer tool — packs a directory of frames into a fixed-column sprite sheet."""

from sprite_capture.tools.atlas_packer.tool import AtlasPackerTool

__all__ = ["AtlasPackerTool"]
