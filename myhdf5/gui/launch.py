#!/usr/bin/env python
"""
Launcher script for the myHDF5 viewer.

Usage:
    python -m myhdf5.gui.launch [file.h5]
    or
    myhdf5 [file.h5] (if installed)

When the OS opens a file with the application, its path is recorded in the
startup marker before the window comes up; the window picks it up from
there.  Each launch appends a short record to the debug log in the temp
directory.
"""

import logging
import sys

from myhdf5.intake import startup

log = logging.getLogger("myhdf5")


def _setup_logging() -> None:
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    log.addHandler(console)

    try:
        debug_file = logging.FileHandler(startup.debug_log_path(), mode="w", encoding="utf-8")
    except OSError as e:
        log.warning(f"Cannot write debug log: {e}")
    else:
        debug_file.setLevel(logging.DEBUG)
        debug_file.setFormatter(formatter)
        log.addHandler(debug_file)

    log.setLevel(logging.DEBUG)


def main():
    """Launch the myHDF5 viewer."""
    _setup_logging()
    startup.record_startup_file(sys.argv)
    try:
        from myhdf5.gui import main as gui_main
    except ImportError as e:
        print("Error: GUI dependencies not installed.")
        print("Install with: pip install PySide6")
        print(f"\nDetails: {e}")
        sys.exit(1)
    gui_main()


if __name__ == "__main__":
    main()
