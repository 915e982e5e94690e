"""
DropZone — window area that accepts dropped HDF5/NeXus files.

Wraps a content widget and draws the intake state on top of it:

  idle                  content only ("Open file…" button in the banner)
  dragging              "Drop it!" banner
  loading               "Loading <name>…" banner with a busy bar
  awaiting user action  guidance text and a "Choose file…" button that
                        opens the native dialog pre-navigated to the file

Qt events are turned into intake candidates and scheduled on the running
asyncio loop (the Qt loop, via QtAsyncio).
"""

from __future__ import annotations

import asyncio
import logging

try:
    from PySide6.QtWidgets import (
        QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QFrame,
        QProgressBar,
    )
    from PySide6.QtCore import Signal
except ImportError:
    from PyQt6.QtWidgets import (  # type: ignore[no-redef]
        QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QFrame,
        QProgressBar,
    )
    from PyQt6.QtCore import pyqtSignal as Signal  # type: ignore[no-redef]

from myhdf5.intake.guidance import guidance_for
from myhdf5.intake.machine import IntakeStateMachine
from myhdf5.intake.platform import SourceKind, active_sources
from myhdf5.intake.sources import DropAdapter, NativeDialogAdapter
from myhdf5.intake.state import AwaitingUserAction, IntakeState, Loading

from .qt_platform import QtPlatform

log = logging.getLogger(__name__)

_BANNER_STYLE = {
    "idle":     "background:#ecf0f1; border-bottom:1px solid #bdc3c7;",
    "drag":     "background:#d6eaf8; border:2px dashed #2980b9;",
    "loading":  "background:#fef9e7; border-bottom:1px solid #f5cba7;",
    "awaiting": "background:#fdebd0; border-bottom:1px solid #e59866;",
}


class DropZone(QWidget):
    """
    Signals
    -------
    status_message(str)
        Short text for the window status bar.
    """

    status_message = Signal(str)

    def __init__(
        self,
        machine: IntakeStateMachine,
        platform: QtPlatform,
        content: QWidget,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._machine = machine
        self._platform = platform
        self._drop = DropAdapter(machine)
        self._sources = active_sources(platform)
        self._dialog = (
            NativeDialogAdapter(machine, platform)
            if SourceKind.DIALOG in self._sources else None
        )
        self._tasks: set[asyncio.Future] = set()

        self.setAcceptDrops(True)
        self._build_ui(content)
        self._unsubscribe = machine.subscribe(self._render)
        self._render(machine.state)

    # ── UI construction ────────────────────────────────────────────────────

    def _build_ui(self, content: QWidget) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self._banner = QFrame()
        bl = QHBoxLayout(self._banner)
        bl.setContentsMargins(10, 6, 10, 6)

        self._message = QLabel()
        self._message.setWordWrap(True)
        bl.addWidget(self._message, 1)

        self._busy = QProgressBar()
        self._busy.setRange(0, 0)      # indeterminate
        self._busy.setMaximumWidth(120)
        bl.addWidget(self._busy)

        self._choose_btn = QPushButton("Choose file…")
        self._choose_btn.clicked.connect(self._on_choose_clicked)
        bl.addWidget(self._choose_btn)

        self._open_btn = QPushButton("Open file…")
        self._open_btn.clicked.connect(self.open_file_picker)
        bl.addWidget(self._open_btn)

        layout.addWidget(self._banner)
        layout.addWidget(content, 1)

    # ── Presentation ───────────────────────────────────────────────────────

    def _render(self, state: IntakeState) -> None:
        loading = isinstance(state, Loading)
        awaiting = isinstance(state, AwaitingUserAction)

        if loading:
            self._set_banner("loading", f"Loading {state.label}…")
        elif awaiting:
            self._set_banner("awaiting", guidance_for(state, self._machine.threshold))
        else:
            self._set_banner("idle", "Drop an HDF5 / NeXus file anywhere in this window.")

        self._busy.setVisible(loading)
        self._choose_btn.setVisible(awaiting and self._dialog is not None)
        self._open_btn.setVisible(not loading)

    def _set_banner(self, kind: str, text: str) -> None:
        self._banner.setStyleSheet(_BANNER_STYLE[kind])
        self._message.setText(text)

    # ── Drag and drop ──────────────────────────────────────────────────────

    def dragEnterEvent(self, event) -> None:
        if event.mimeData().hasUrls() and not self._machine.is_loading:
            event.acceptProposedAction()
            self._set_banner("drag", "Drop it!")
        else:
            event.ignore()

    def dragLeaveEvent(self, event) -> None:
        self._render(self._machine.state)
        super().dragLeaveEvent(event)

    def dropEvent(self, event) -> None:
        paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
        event.acceptProposedAction()
        self._render(self._machine.state)
        self.offer_paths(paths)

    def offer_paths(self, paths: list[str]) -> None:
        """Hand dropped or picked *paths* to the intake layer."""
        candidate = self._drop.candidate_from_paths(paths)
        if candidate is None:
            ignored = ", ".join(self._drop.last_rejected) or "nothing"
            self.status_message.emit(f"Ignored {ignored}: not an HDF5 / NeXus file")
            return
        self._schedule(self._machine.admit(candidate))

    # ── Pickers ────────────────────────────────────────────────────────────

    def open_file_picker(self) -> None:
        """Drop-zone picker: a selection behaves exactly like a drop."""
        self._schedule(self._pick_and_offer())

    async def _pick_and_offer(self) -> None:
        path = await self._platform.open_native_file_picker()
        if path:
            self.offer_paths([path])

    def _on_choose_clicked(self) -> None:
        state = self._machine.state
        if self._dialog is None or not isinstance(state, AwaitingUserAction):
            return
        self._schedule(self._dialog.request(hint_path=state.path))

    # ── Helpers ────────────────────────────────────────────────────────────

    def _schedule(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(f"File intake failed: {exc}", exc_info=exc)
            self.status_message.emit(f"Could not open file: {exc}")

    def closeEvent(self, event) -> None:
        self._unsubscribe()
        super().closeEvent(event)
