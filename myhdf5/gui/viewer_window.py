"""
ViewerWindow — main window of the myhdf5 viewer.

The central area is a DropZone wrapping the ContentTreeWidget.  The window
owns the intake stack (platform, size-gated loader, state machine, startup
adapter) and is the consumer of delivered files.
Settings are read from, and the last folder saved to, the StateManager.
"""

from __future__ import annotations

import logging

try:
    from PySide6.QtWidgets import QMainWindow, QWidget, QStatusBar
    from PySide6.QtGui import QAction, QCloseEvent
except ImportError:
    from PyQt6.QtWidgets import (  # type: ignore[no-redef]
        QMainWindow, QWidget, QStatusBar,
    )
    from PyQt6.QtGui import QAction, QCloseEvent  # type: ignore[no-redef]

from myhdf5.intake.loader import SizeGatedLoader
from myhdf5.intake.machine import IntakeStateMachine
from myhdf5.intake.sources import StartupAdapter
from myhdf5.state import IntakeSettings, StateManager

from .content_tree import ContentTreeWidget
from .dropzone import DropZone
from .qt_platform import QtPlatform

log = logging.getLogger(__name__)


class ViewerWindow(QMainWindow):
    """
    Parameters
    ----------
    state_manager : StateManager, optional
        Shared settings.  If None, a fresh one is created.
    embedded : bool
        True when hosted inside another application: the startup file
        association and its temp marker are not used.
    parent : QWidget, optional
    """

    def __init__(
        self,
        state_manager: StateManager | None = None,
        embedded: bool = False,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("myHDF5")
        self.resize(900, 650)

        self._state_manager = state_manager or StateManager()
        settings = IntakeSettings.from_state(self._state_manager)
        last_folder = self._state_manager.get("viewer", "last_folder", "")

        self._platform = QtPlatform(self, default_folder=last_folder, desktop=not embedded)
        self._machine = IntakeStateMachine(
            SizeGatedLoader(self._platform, settings.size_threshold),
            self._platform,
            on_file_ready=self._on_file_ready,
            on_load_failed=self._on_load_failed,
            debounce=settings.debounce_s,
        )
        self._startup = StartupAdapter(self._machine, self._platform)

        self._build_ui()

    @property
    def machine(self) -> IntakeStateMachine:
        return self._machine

    # ── UI construction ────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        self._content = ContentTreeWidget()
        self._dropzone = DropZone(self._machine, self._platform, self._content)
        self.setCentralWidget(self._dropzone)

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready")
        self._dropzone.status_message.connect(self._status_bar.showMessage)

        file_menu = self.menuBar().addMenu("&File")
        open_act = QAction("Open…", self)
        open_act.triggered.connect(self._dropzone.open_file_picker)
        file_menu.addAction(open_act)
        close_act = QAction("Close", self)
        close_act.triggered.connect(self.close)
        file_menu.addAction(close_act)

    # ── Intake ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Open the file the application was started with, if any."""
        await self._startup.probe()

    def _on_file_ready(self, name: str, data: bytes) -> None:
        if self._content.show_file(name, data):
            self._status_bar.showMessage(f"{name}  ({len(data):,} bytes)")
        else:
            log.warning(f"{name} was loaded but h5py cannot open it")
            self._status_bar.showMessage(f"{name} is not a readable HDF5 file")

    def _on_load_failed(self, name: str, error: Exception) -> None:
        self._status_bar.showMessage(f"Failed to load {name}: {error}")

    # ── Window lifecycle ───────────────────────────────────────────────────

    def closeEvent(self, event: QCloseEvent) -> None:
        self._state_manager.set("viewer", "last_folder", self._platform.default_folder)
        self._state_manager.save()
        self._content.clear()
        super().closeEvent(event)
