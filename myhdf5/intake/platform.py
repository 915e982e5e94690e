"""
Platform collaborators consumed by the intake core.

``Platform`` is the contract (size stat, full read, native picker, startup
path, temp-artifact removal, desktop capability).  ``LocalPlatform`` is the
file-system implementation used by the desktop application and the tests;
the GUI layer subclasses it to supply a real file dialog.

``active_sources`` is the single capability check: which intake sources
are live for a given platform.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from . import startup as _startup

log = logging.getLogger(__name__)


class SourceKind(enum.Enum):
    DROP = "drop"          # drag-drop and the drop-zone picker
    DIALOG = "dialog"      # native picker re-supplying a path
    STARTUP = "startup"    # OS file association


class Platform(Protocol):
    artifact_name: str

    async def stat_size(self, path: str) -> Optional[int]: ...

    async def read_all_bytes(self, path: str) -> bytes: ...

    async def open_native_file_picker(self, hint_path: Optional[str] = None) -> Optional[str]: ...

    async def get_startup_file_path(self) -> Optional[str]: ...

    async def delete_temp_artifact(self, name: str) -> None: ...

    def is_desktop_runtime(self) -> bool: ...


def active_sources(platform: Platform) -> frozenset[SourceKind]:
    """Intake sources that are live on *platform*."""
    if platform.is_desktop_runtime():
        return frozenset(SourceKind)
    return frozenset({SourceKind.DROP})


class LocalPlatform:
    """
    File-system backed platform.

    Parameters
    ----------
    desktop : bool
        False when the viewer is embedded in another application; the
        startup association and temp-artifact cleanup are then inactive.
    temp_dir : Path, optional
        Directory holding the startup marker.  Defaults to the system temp
        directory.
    """

    artifact_name = _startup.MARKER_NAME

    def __init__(self, desktop: bool = True, temp_dir: Optional[Path] = None) -> None:
        self._desktop = desktop
        self._temp_dir = Path(temp_dir) if temp_dir is not None else None

    def is_desktop_runtime(self) -> bool:
        return self._desktop

    async def stat_size(self, path: str) -> Optional[int]:
        try:
            return await asyncio.to_thread(os.path.getsize, path)
        except OSError as exc:
            log.debug(f"stat failed for {path}: {exc}")
            return None

    async def read_all_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def open_native_file_picker(self, hint_path: Optional[str] = None) -> Optional[str]:
        # No dialog without a GUI; see myhdf5.gui.qt_platform.QtPlatform.
        return None

    async def get_startup_file_path(self) -> Optional[str]:
        if not self._desktop:
            return None
        return await asyncio.to_thread(_startup.read_marker, self._temp_dir)

    async def delete_temp_artifact(self, name: str) -> None:
        if not self._desktop:
            return
        base = self._temp_dir if self._temp_dir is not None else _startup.marker_path().parent
        await asyncio.to_thread(os.remove, base / name)
