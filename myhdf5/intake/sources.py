"""
Intake source adapters.

Each adapter turns one kind of platform event into a ``CandidateFile`` and
hands it to the ``IntakeStateMachine``.  None of them keeps state of its
own; duplicate emission is rejected by the state machine's admission guard.

  DropAdapter          drag-drop onto the window, and the drop-zone picker
  NativeDialogAdapter  native file dialog re-supplying a path
  StartupAdapter       path the OS opened the application with
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .candidates import (
    FileByteSource, Handle, MemoryByteSource, PathRef, file_name,
    first_recognized, is_recognized,
)
from .machine import IntakeStateMachine
from .platform import Platform

log = logging.getLogger(__name__)


class DropAdapter:
    """
    Drag-drop / picker selections.  Always produces a ``Handle``.

    Only the first recognized HDF5/NeXus file of a multi-file drop is used.
    """

    def __init__(self, machine: IntakeStateMachine) -> None:
        self._machine = machine
        self.last_rejected: list[str] = []

    def candidate_from_paths(self, paths: Iterable[str]) -> Optional[Handle]:
        chosen, rejected = first_recognized(paths)
        self.last_rejected = rejected
        for name in rejected:
            log.info(f"Ignoring {name}: not an HDF5/NeXus file")
        if chosen is None:
            return None
        return Handle(file_name(chosen), FileByteSource(chosen))

    def candidate_from_bytes(self, name: str, data: bytes) -> Optional[Handle]:
        if not is_recognized(name):
            self.last_rejected = [name]
            log.info(f"Ignoring {name}: not an HDF5/NeXus file")
            return None
        self.last_rejected = []
        return Handle(name, MemoryByteSource(data))

    async def offer(self, paths: Iterable[str]) -> bool:
        """Admit the first recognized file in *paths*.  False if nothing was admitted."""
        candidate = self.candidate_from_paths(paths)
        if candidate is None:
            return False
        return await self._machine.admit(candidate)

    async def offer_bytes(self, name: str, data: bytes) -> bool:
        candidate = self.candidate_from_bytes(name, data)
        if candidate is None:
            return False
        return await self._machine.admit(candidate)


class NativeDialogAdapter:
    """
    Native file dialog, opened on explicit user request.

    The chosen path is checked by the size-gated loader like any other
    path; hand-picking a file does not make it small.
    """

    def __init__(self, machine: IntakeStateMachine, platform: Platform) -> None:
        self._machine = machine
        self._platform = platform

    async def request(self, hint_path: Optional[str] = None) -> Optional[PathRef]:
        path = await self._platform.open_native_file_picker(hint_path)
        if not path:
            log.debug("File dialog cancelled")
            return None
        if not is_recognized(path):
            log.info(f"Ignoring {file_name(path)}: not an HDF5/NeXus file")
            return None
        candidate = PathRef(path)
        await self._machine.admit(candidate)
        return candidate


class StartupAdapter:
    """OS file association, queried once at process start."""

    def __init__(self, machine: IntakeStateMachine, platform: Platform) -> None:
        self._machine = machine
        self._platform = platform

    async def probe(self) -> bool:
        """Admit the startup file, if any.  True if a candidate was admitted."""
        if not self._machine.begin_startup_probe():
            return False
        path = await self._platform.get_startup_file_path()
        if not path:
            log.debug("No startup file")
            return False
        if not is_recognized(path):
            log.info(f"Ignoring startup file {path}: not an HDF5/NeXus file")
            self._machine.abandon_artifact(self._platform.artifact_name)
            return False
        log.info(f"Opening startup file {path}")
        return await self._machine.admit(PathRef(path, artifact=self._platform.artifact_name))
