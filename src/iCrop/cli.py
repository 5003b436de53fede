"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
import logging
from pathlib import Path

import typer
from PySide6.QtCore import QRectF
from rich import print
from rich.table import Table

from .config import DEFAULT_COMPRESS_QUALITY, DEFAULT_MAX_BITMAP_SIZE
from .core.crop_executor import CropExecutor
from .core.transform import AffineTransformState, cover_matrix
from .errors import ICropError
from .errors.handler import ErrorHandler
from .gui.utils.console_logger import ensure_console_logger
from .models.crop import CompressFormat, CropParameters, ImageState
from .utils.image_loader import decode_bitmap, probe_source_dimensions, read_exif_info

_LOGGER = logging.getLogger("iCrop")

app = typer.Typer(help="Crop images the way they were framed on screen")


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ICropError, ValueError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _configure_logging(verbose: bool) -> None:
    if verbose:
        ensure_console_logger(_LOGGER, "icrop-cli", level=logging.DEBUG)


@app.command()
@_handle_errors
def probe(path: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Show the stored size and EXIF orientation of an image."""

    size = probe_source_dimensions(path)
    exif = read_exif_info(path)
    table = Table(title=str(path))
    table.add_column("Property")
    table.add_column("Value", justify="right")
    table.add_row("Stored size", f"{size.width} x {size.height}")
    table.add_row("EXIF orientation", str(exif.exif_orientation))
    table.add_row("EXIF degrees", str(exif.exif_degrees))
    table.add_row("EXIF translation", str(exif.exif_translation))
    print(table)


@app.command()
@_handle_errors
def crop(
    input_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source image"),
    output_path: Path = typer.Argument(..., dir_okay=False, help="Destination file"),
    crop_width: float = typer.Option(0.0, help="Crop window width in view pixels (0: whole image)"),
    crop_height: float = typer.Option(0.0, help="Crop window height in view pixels (0: whole image)"),
    zoom: float = typer.Option(1.0, help="Zoom relative to the fit-to-crop scale"),
    angle: float = typer.Option(0.0, help="Clockwise rotation in degrees"),
    pan_x: float = typer.Option(0.0, help="Horizontal image offset in view pixels"),
    pan_y: float = typer.Option(0.0, help="Vertical image offset in view pixels"),
    max_width: int = typer.Option(0, help="Maximum output width (0: unbounded)"),
    max_height: int = typer.Option(0, help="Maximum output height (0: unbounded)"),
    output_format: str = typer.Option("JPEG", "--format", help="JPEG, PNG or WEBP"),
    quality: int = typer.Option(DEFAULT_COMPRESS_QUALITY, min=0, max=100),
    max_bitmap_size: int = typer.Option(DEFAULT_MAX_BITMAP_SIZE, min=1, help="Longest side of the view bitmap"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Frame INPUT_PATH like an interactive session would and write the crop."""

    _configure_logging(verbose)
    fmt = CompressFormat.parse(output_format)

    decoded = decode_bitmap(input_path, max_bitmap_size, max_bitmap_size, output_path=output_path)
    displayed = decoded.displayed()
    decoded.release()

    crop_rect = QRectF(
        0.0,
        0.0,
        crop_width or float(displayed.width),
        crop_height or float(displayed.height),
    )
    transform = AffineTransformState()
    transform.set_image_bounds(displayed.width, displayed.height)
    transform.set_matrix(cover_matrix(crop_rect, displayed.width, displayed.height))
    center = crop_rect.center()
    transform.scale_about(zoom, center.x(), center.y())
    transform.rotate_about(angle, center.x(), center.y())
    transform.translate(pan_x, pan_y)
    transform.log_matrix("CLI framing")

    state = ImageState(
        crop_rect=crop_rect,
        current_image_rect=transform.current_image_rect(),
        current_scale=transform.current_scale(),
        current_angle=transform.current_angle(),
    )
    params = CropParameters(
        max_output_width=max_width,
        max_output_height=max_height,
        output_format=fmt,
        output_quality=quality,
        input_path=str(input_path),
        output_path=str(output_path),
        exif_info=decoded.exif_info,
    )
    executor = CropExecutor(error_handler=ErrorHandler(_LOGGER))
    result = executor.run(displayed, state, params)
    if not result.success:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(1)

    table = Table(title=str(output_path))
    table.add_column("Property")
    table.add_column("Value", justify="right")
    table.add_row("Cropped", "yes" if result.cropped else "no (copied)")
    table.add_row("Offset", f"{result.offset_x}, {result.offset_y}")
    table.add_row("Size", f"{result.width} x {result.height}")
    if fmt is CompressFormat.JPEG and result.cropped:
        table.add_row("Metadata copied", "yes" if result.metadata_copied else "no")
    print(table)


def main() -> None:  # pragma: no cover - thin wrapper
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
