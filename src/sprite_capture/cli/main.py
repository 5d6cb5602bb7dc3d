"""CLI entry point — click group with one sub-command per tool."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from sprite_capture.core.config import ConfigManager
from sprite_capture.core.datatypes import Anchor
from sprite_capture.core.exceptions import CaptureError
from sprite_capture.tools.atlas_packer.logic import VALID_METADATA_FORMATS


def _echo_progress(**kw: object) -> None:
    click.echo(f"  [{kw['current']:5d}/{kw['total']:5d}] {kw['message']}")


def _echo_log(**kw: object) -> None:
    click.echo(f"  {kw['message']}")


@click.group()
@click.version_option(package_name="sprite-capture")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output to stderr.")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.config/sprite-capture).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_dir: Path | None) -> None:
    """Sprite Capture — render animation clips and pack them into sprite sheets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = ConfigManager(config_dir=config_dir)
    try:
        config.load()
    except CaptureError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = config


@cli.command(name="animations")
@click.argument("source", type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path))
@click.option("--source-fps", type=float, default=30.0, show_default=True, help="Frame rate of the image sequences.")
def animations_cmd(source: Path, source_fps: float) -> None:
    """List the animation clips found in an image-sequence SOURCE directory."""
    from sprite_capture.tools.sprite_export.sources import ImageSequenceSource

    try:
        sequence = ImageSequenceSource(source, source_fps=source_fps)
        names = sequence.animation_names()
    except CaptureError as exc:
        raise click.ClickException(str(exc)) from exc

    if not names:
        click.echo("No animations found.")
        return
    for name in names:
        click.echo(f"{name}  ({sequence.duration(name):.3f}s)")


@cli.command(name="export")
@click.argument("source", type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path))
@click.option("-s", "--subject", required=True, help="Name of the animated subject.")
@click.option("-a", "--animation", required=True, help="Animation clip to export.")
@click.option("--fps", "frames_per_second", type=float, default=None, help="Capture frame rate (default: config, 20).")
@click.option("--source-fps", type=float, default=30.0, show_default=True, help="Frame rate of the image sequences.")
@click.option(
    "-o",
    "--output",
    "export_path",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Export folder (default: config, 'SpriteSheets').",
)
@click.option("-c", "--columns", type=int, default=None, help="Sprite sheet columns (default: config, 6).")
@click.option(
    "--anchor",
    type=click.Choice([a.value for a in Anchor]),
    default=None,
    help="Anchor of the uniform crop on each frame's tight bounds (default: config, top-left).",
)
@click.option(
    "-m",
    "--metadata",
    "metadata_format",
    type=click.Choice(sorted(VALID_METADATA_FORMATS)),
    default=None,
    help="Also write a frame table next to the sheet.",
)
@click.pass_obj
def export_cmd(
    config: ConfigManager,
    source: Path,
    subject: str,
    animation: str,
    frames_per_second: float | None,
    source_fps: float,
    export_path: Path | None,
    columns: int | None,
    anchor: str | None,
    metadata_format: str | None,
) -> None:
    """Capture ANIMATION from an image-sequence SOURCE and pack it into a sprite sheet.

    The sheet is written to EXPORT/SUBJECT/ANIMATION.png; the intermediate
    frame directory is removed afterwards.
    """
    from sprite_capture.core.events import EventBus
    from sprite_capture.tools.sprite_export import SpriteExportTool

    try:
        defaults = config.export_defaults(subject)
    except CaptureError as exc:
        raise click.ClickException(str(exc)) from exc

    bus = EventBus()
    bus.subscribe("progress", _echo_progress)
    bus.subscribe("log", _echo_log)

    tool = SpriteExportTool(event_bus=bus)
    try:
        result = tool.run(
            params={
                "source": source,
                "source_fps": source_fps,
                "subject": subject,
                "animation": animation,
                "frames_per_second": frames_per_second if frames_per_second is not None else defaults.frames_per_second,
                "export_path": export_path or defaults.export_path,
                "columns": columns if columns is not None else defaults.columns,
                "anchor": anchor or defaults.anchor.value,
                "metadata_format": metadata_format or defaults.metadata_format,
            },
        )
    except CaptureError as exc:
        raise click.ClickException(str(exc)) from exc

    layout = result.atlas.layout
    click.echo(
        f"Captured {result.total_frame_count} frames at {result.uniform_size} "
        f"into a {layout.columns}x{layout.rows} sprite sheet "
        f"({layout.width}x{layout.height}px) → {result.atlas.atlas.path}"
    )


@cli.command(name="pack")
@click.argument("inputs", nargs=-1, required=True, type=click.Path(exists=True, resolve_path=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output sprite sheet (default: <directory>.png beside a single input directory).",
)
@click.option("-c", "--columns", type=int, default=None, help="Number of columns (default: config, 6).")
@click.option(
    "-m",
    "--metadata",
    "metadata_format",
    type=click.Choice(sorted(VALID_METADATA_FORMATS)),
    default=None,
    help="Also write a frame table next to the sheet.",
)
@click.option("--delete-frames", is_flag=True, default=False, help="Remove the input directory afterwards.")
@click.pass_obj
def pack_cmd(
    config: ConfigManager,
    inputs: tuple[Path, ...],
    output_path: Path | None,
    columns: int | None,
    metadata_format: str | None,
    delete_frames: bool,
) -> None:
    """Pack frame images into a fixed-column sprite sheet.

    INPUTS can be image files, directories, or a mix of both.
    """
    from sprite_capture.core.events import EventBus
    from sprite_capture.tools.atlas_packer import AtlasPackerTool

    bus = EventBus()
    bus.subscribe("progress", _echo_progress)
    bus.subscribe("log", _echo_log)

    tool = AtlasPackerTool(event_bus=bus)
    try:
        result = tool.run(
            params={
                "inputs": list(inputs),
                "output": output_path,
                "columns": columns if columns is not None else int(config.get("columns")),
                "metadata_format": metadata_format,
                "delete_frames": delete_frames,
            },
        )
    except CaptureError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Packed {len(result.frames)} frames into a {result.layout.columns}x{result.layout.rows} "
        f"sprite sheet ({result.atlas.width}x{result.atlas.height}px) → {result.atlas.path}"
    )
