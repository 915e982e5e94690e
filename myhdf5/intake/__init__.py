"""
File intake for the viewer.

Decides, for a file arriving by drag-drop, native dialog or OS file
association, whether it can be read straight into memory or whether the
user has to supply it another way.
"""

from .candidates import (
    RECOGNIZED_EXTENSIONS, Handle, PathRef, FileByteSource, MemoryByteSource,
    is_recognized,
)
from .state import Idle, Loading, AwaitingUserAction, Reason, IDLE
from .loader import (
    SizeGatedLoader, Eligible, TooLarge, SizeUnknown, ReadFailed,
    DEFAULT_SIZE_THRESHOLD,
)
from .guidance import format_size, guidance_for
from .platform import LocalPlatform, SourceKind, active_sources
from .machine import IntakeStateMachine, LoadGuard
from .sources import DropAdapter, NativeDialogAdapter, StartupAdapter

__all__ = [
    "RECOGNIZED_EXTENSIONS", "Handle", "PathRef", "FileByteSource",
    "MemoryByteSource", "is_recognized",
    "Idle", "Loading", "AwaitingUserAction", "Reason", "IDLE",
    "SizeGatedLoader", "Eligible", "TooLarge", "SizeUnknown", "ReadFailed",
    "DEFAULT_SIZE_THRESHOLD",
    "format_size", "guidance_for",
    "LocalPlatform", "SourceKind", "active_sources",
    "IntakeStateMachine", "LoadGuard",
    "DropAdapter", "NativeDialogAdapter", "StartupAdapter",
]
