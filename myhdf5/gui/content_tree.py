"""
ContentTreeWidget — lazy tree of groups and datasets of a loaded file.

The file arrives as bytes from the intake layer and is opened from memory
with h5py.  Children of a group are only read when the node is expanded.
"""

from __future__ import annotations

import io

try:
    from PySide6.QtWidgets import (
        QWidget, QVBoxLayout, QTreeWidget, QTreeWidgetItem, QLabel,
        QAbstractItemView,
    )
    from PySide6.QtCore import Qt
    from PySide6.QtGui import QFont
except ImportError:
    from PyQt6.QtWidgets import (  # type: ignore[no-redef]
        QWidget, QVBoxLayout, QTreeWidget, QTreeWidgetItem, QLabel,
        QAbstractItemView,
    )
    from PyQt6.QtCore import Qt        # type: ignore[no-redef]
    from PyQt6.QtGui import QFont      # type: ignore[no-redef]

import h5py
import numpy as np

# Qt user-data roles
_H5_PATH_ROLE = Qt.ItemDataRole.UserRole        # full path inside the file
_LOADED_ROLE  = Qt.ItemDataRole.UserRole + 1    # bool: children loaded?


def describe_dataset(ds: h5py.Dataset) -> str:
    """Shape, dtype and (for scalars) the value, e.g. ``"scalar  [int64] = 3"``."""
    shape_str = "×".join(str(d) for d in ds.shape) if ds.shape else "scalar"
    text = f"{shape_str}  [{ds.dtype}]"
    if ds.ndim == 0:
        try:
            value = ds[()]
        except (OSError, TypeError):
            return text
        if isinstance(value, (bytes, np.bytes_)):
            value = value.decode("utf-8", errors="replace")
        text += f" = {value}"
    return text


class ContentTreeWidget(QWidget):
    """Shows the internal structure of the most recently delivered file."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._buffer: io.BytesIO | None = None
        self._h5file: h5py.File | None = None
        self._name: str | None = None
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.setSpacing(3)

        self._file_label = QLabel("Drop an HDF5 / NeXus file here")
        self._file_label.setWordWrap(True)
        self._file_label.setStyleSheet(
            "font-size:11pt; font-weight:bold; color:#1a1a1a; padding:3px 4px;"
        )
        layout.addWidget(self._file_label)

        self._tree = QTreeWidget()
        self._tree.setHeaderLabels(["Name", "Info"])
        self._tree.setColumnWidth(0, 240)
        self._tree.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self._tree.setIndentation(14)
        self._tree.itemExpanded.connect(self._on_item_expanded)
        layout.addWidget(self._tree, 1)

    # ── Public API ─────────────────────────────────────────────────────────

    @property
    def file_name(self) -> str | None:
        return self._name

    def show_file(self, name: str, data: bytes) -> bool:
        """Open *data* as an HDF5 file and list its root.  False if h5py rejects it."""
        self.clear()
        buffer = io.BytesIO(data)
        try:
            self._h5file = h5py.File(buffer, "r")
        except OSError as exc:
            self._file_label.setText(f"Cannot open {name}: {exc}")
            return False
        self._buffer = buffer
        self._name = name
        self._file_label.setText(name)
        self._populate(self._tree.invisibleRootItem(), self._h5file, "/")
        return True

    def clear(self) -> None:
        self._close_h5()
        self._tree.clear()
        self._file_label.setText("Drop an HDF5 / NeXus file here")

    # ── Tree population ────────────────────────────────────────────────────

    def _populate(self, parent: QTreeWidgetItem, group: h5py.Group, h5_path: str) -> None:
        for name in sorted(group.keys(), key=str.lower):
            child_path = f"{h5_path.rstrip('/')}/{name}"
            try:
                child = group[name]
            except KeyError:
                # Dangling external/soft link
                QTreeWidgetItem(parent, [name, "(broken link)"])
                continue

            if isinstance(child, h5py.Group):
                item = QTreeWidgetItem(parent, [name, f"Group  ({len(child)} items)"])
                item.setData(0, _H5_PATH_ROLE, child_path)
                item.setData(0, _LOADED_ROLE, False)
                if len(child) > 0:
                    item.setChildIndicatorPolicy(
                        QTreeWidgetItem.ChildIndicatorPolicy.ShowIndicator
                    )
                font = QFont()
                font.setBold(True)
                item.setFont(0, font)
            else:
                item = QTreeWidgetItem(parent, [name, describe_dataset(child)])
                item.setData(0, _LOADED_ROLE, True)

            nx_class = child.attrs.get("NX_class")
            if nx_class is not None:
                if isinstance(nx_class, (bytes, np.bytes_)):
                    nx_class = nx_class.decode("utf-8", errors="replace")
                item.setToolTip(0, f"NX_class = {nx_class}")

    def _on_item_expanded(self, item: QTreeWidgetItem) -> None:
        if item.data(0, _LOADED_ROLE) or self._h5file is None:
            return
        item.setData(0, _LOADED_ROLE, True)
        h5_path = item.data(0, _H5_PATH_ROLE)
        self._populate(item, self._h5file[h5_path], h5_path)

    # ── Cleanup ────────────────────────────────────────────────────────────

    def _close_h5(self) -> None:
        if self._h5file is not None:
            self._h5file.close()
            self._h5file = None
        self._buffer = None
        self._name = None

    def closeEvent(self, event) -> None:
        self._close_h5()
        super().closeEvent(event)
