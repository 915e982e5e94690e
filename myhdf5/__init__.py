"""
myHDF5: desktop viewer for HDF5 / NeXus files

The interesting part is the file intake: files can arrive by drag-drop, a
native file dialog, or the OS file association.  Before anything is read
into memory the file size is checked against a configured threshold;
oversized or unreadable files put the window into an "awaiting user action"
state that tells the user how to supply the file instead.

Modules:
    intake: candidates, size-gated loader, intake state machine, source adapters
    state: persisted settings (size threshold, debounce, last folder)
    gui: Qt drop zone, viewer window and launcher

Example:
    >>> from myhdf5.intake import LocalPlatform, SizeGatedLoader, IntakeStateMachine
    >>> platform = LocalPlatform()
    >>> machine = IntakeStateMachine(SizeGatedLoader(platform, 1 << 30), platform,
    ...                              on_file_ready=lambda name, data: print(name, len(data)))
"""

__version__ = "0.1.0"

from myhdf5.intake import (
    IntakeStateMachine,
    SizeGatedLoader,
    LocalPlatform,
    DropAdapter,
    NativeDialogAdapter,
    StartupAdapter,
)
from myhdf5.state import StateManager, IntakeSettings

__all__ = [
    "IntakeStateMachine",
    "SizeGatedLoader",
    "LocalPlatform",
    "DropAdapter",
    "NativeDialogAdapter",
    "StartupAdapter",
    "StateManager",
    "IntakeSettings",
]
