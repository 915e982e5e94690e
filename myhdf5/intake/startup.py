"""
Startup file association.

When the OS opens a file with the application, the path arrives on the
command line.  The launcher records it in a small marker file in the system
temp directory; the intake layer later asks for it once, and removes the
marker after the path has been consumed or abandoned.  A debug log next to
the marker records what each launch saw.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from .candidates import is_recognized

log = logging.getLogger(__name__)

MARKER_NAME = "myhdf5_open_file.txt"
DEBUG_LOG_NAME = "myhdf5_debug.log"


def _temp_dir(temp_dir: Optional[Path]) -> Path:
    return Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())


def marker_path(temp_dir: Optional[Path] = None) -> Path:
    return _temp_dir(temp_dir) / MARKER_NAME


def debug_log_path(temp_dir: Optional[Path] = None) -> Path:
    return _temp_dir(temp_dir) / DEBUG_LOG_NAME


def find_startup_file(argv: Sequence[str]) -> Optional[str]:
    """First argument after the program name with an HDF5/NeXus extension."""
    for arg in argv[1:]:
        if is_recognized(arg):
            return arg
    return None


def write_marker(path: str, temp_dir: Optional[Path] = None) -> bool:
    """Record *path* as the file the application was opened with."""
    target = marker_path(temp_dir)
    try:
        target.write_text(path, encoding="utf-8")
    except OSError as exc:
        log.warning(f"Failed to write startup marker {target}: {exc}")
        return False
    log.debug(f"Wrote startup marker {target}")
    return True


def read_marker(temp_dir: Optional[Path] = None) -> Optional[str]:
    """
    Path recorded by the launcher, or None.

    The marker is left in place; the intake state machine requests its
    removal once the path has been handled.  A marker that cannot be read is
    removed straight away.
    """
    target = marker_path(temp_dir)
    if not target.exists():
        return None
    try:
        content = target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.warning(f"Unreadable startup marker {target}: {exc}")
        remove_marker(temp_dir)
        return None
    path = content.strip()
    return path or None


def remove_marker(temp_dir: Optional[Path] = None) -> None:
    """Best-effort removal of the startup marker."""
    try:
        os.remove(marker_path(temp_dir))
    except FileNotFoundError:
        pass
    except OSError as exc:
        log.debug(f"Could not remove startup marker: {exc}")


def record_startup_file(argv: Sequence[str], temp_dir: Optional[Path] = None) -> Optional[str]:
    """Write the startup marker if *argv* names an HDF5/NeXus file; return that path."""
    log.debug("=== App started ===")
    log.debug(f"Arguments count: {len(argv)}")
    for i, arg in enumerate(argv):
        log.debug(f"  Arg[{i}]: {arg}")

    path = find_startup_file(argv)
    if path is None:
        log.debug("No HDF5 file found in arguments")
        return None

    log.debug(f"Found HDF5 file: {path}")
    write_marker(path, temp_dir)
    return path
