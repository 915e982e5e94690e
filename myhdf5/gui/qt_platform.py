"""Qt-backed platform: the file-system platform plus a real file dialog."""

from __future__ import annotations

import os
from typing import Optional

try:
    from PySide6.QtWidgets import QFileDialog, QWidget
except ImportError:
    from PyQt6.QtWidgets import QFileDialog, QWidget  # type: ignore[no-redef]

from myhdf5.intake.candidates import RECOGNIZED_EXTENSIONS
from myhdf5.intake.platform import LocalPlatform

FILE_FILTER = (
    "HDF5 / NeXus files ("
    + " ".join(f"*{ext}" for ext in RECOGNIZED_EXTENSIONS)
    + ");;All files (*)"
)


class QtPlatform(LocalPlatform):
    """
    LocalPlatform whose native picker is a ``QFileDialog``.

    Parameters
    ----------
    parent : QWidget
        Dialog parent.
    default_folder : str, optional
        Starting folder when no hint path is given.
    """

    def __init__(self, parent: QWidget, default_folder: str = "", **kwargs) -> None:
        super().__init__(**kwargs)
        self._parent = parent
        self.default_folder = default_folder

    def start_folder(self, hint_path: Optional[str] = None) -> str:
        if hint_path:
            folder = os.path.dirname(hint_path)
            if os.path.isdir(folder):
                return hint_path
        return self.default_folder or os.path.expanduser("~")

    async def open_native_file_picker(self, hint_path: Optional[str] = None) -> Optional[str]:
        path, _ = QFileDialog.getOpenFileName(
            self._parent, "Open HDF5 / NeXus file", self.start_folder(hint_path), FILE_FILTER,
        )
        if not path:
            return None
        self.default_folder = os.path.dirname(path)
        return path
