"""
myHDF5 viewer window — accepts HDF5/NeXus files by drag-drop, file dialog
or OS file association and shows their structure.

Can be launched:
  - Standalone:  myhdf5 [file.h5]  (entry point in pyproject.toml)
  - Embedded:    ViewerWindow(embedded=True) inside another Qt application
"""

from .viewer_window import ViewerWindow

__all__ = ["ViewerWindow", "main"]


def main() -> None:
    """Create the application, show the viewer and run the Qt asyncio loop."""
    import sys

    from PySide6 import QtAsyncio
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication(sys.argv)
    app.setStyle("Fusion")

    window = ViewerWindow()
    window.show()
    QtAsyncio.run(window.start(), keep_running=True, quit_qapp=True)
