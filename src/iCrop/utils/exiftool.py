"""Helpers for invoking the :command:`exiftool` CLI."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

from ..errors import ExternalToolError


def _hidden_window_flags() -> tuple[object, int]:
    """Return ``(startupinfo, creationflags)`` that hide the console on Windows."""

    if os.name != "nt":
        return None, 0
    startupinfo = subprocess.STARTUPINFO()
    startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    startupinfo.wShowWindow = subprocess.SW_HIDE
    return startupinfo, getattr(subprocess, "CREATE_NO_WINDOW", 0)


def copy_exif(source: Path | str, destination: Path | str, width: int, height: int) -> None:
    """Copy metadata from *source* onto the cropped *destination*.

    The cropped pixels are already upright, so the orientation tag is reset
    and the EXIF pixel dimensions are rewritten to the cropped size.

    Raises
    ------
    ExternalToolError
        Raised when the ``exiftool`` executable is missing or when the command
        exits with a non-zero status code.
    """

    executable = shutil.which("exiftool")
    if executable is None:
        raise ExternalToolError(
            "exiftool executable not found. Install it from https://exiftool.org/ "
            "and ensure it is available on PATH."
        )

    source_path = Path(source)
    destination_path = Path(destination)
    cmd = [
        executable,
        "-overwrite_original",
        "-charset",
        "filename=utf8",
        "-TagsFromFile",
        source_path.as_posix(),
        "-all:all",
        "-n",  # numeric Orientation value
        "-Orientation=1",
        f"-ExifImageWidth={int(width)}",
        f"-ExifImageHeight={int(height)}",
        destination_path.as_posix(),
    ]

    startupinfo, creationflags = _hidden_window_flags()
    try:
        subprocess.run(
            cmd,
            capture_output=True,
            check=True,
            encoding="utf-8",
            errors="replace",
            startupinfo=startupinfo,
            creationflags=creationflags,
        )
    except FileNotFoundError as exc:
        raise ExternalToolError(
            f"Failed to execute exiftool (FileNotFoundError): {exc}"
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else "unknown error"
        raise ExternalToolError(f"ExifTool failed with an error: {stderr}") from exc


__all__ = ["copy_exif"]
