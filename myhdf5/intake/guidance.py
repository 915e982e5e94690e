"""User-facing guidance text for the awaiting-action state."""

from __future__ import annotations

from .state import AwaitingUserAction, Reason

_UNITS = ("bytes", "KB", "MB", "GB", "TB")


def format_size(n_bytes: int) -> str:
    """Human-readable byte count using binary multiples (1 KB = 1024 bytes)."""
    value = float(n_bytes)
    for unit in _UNITS:
        if value < 1024 or unit == _UNITS[-1]:
            if unit == "bytes":
                return f"{int(value)} bytes"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{n_bytes} bytes"


def guidance_for(state: AwaitingUserAction, threshold: int) -> str:
    """Actionable message for *state*; these are not error messages."""
    name = state.file_name
    if state.reason is Reason.TOO_LARGE:
        size = format_size(state.size) if state.size is not None else "too large"
        return (
            f"{name} is {size}, larger than the {format_size(threshold)} that can be "
            f"loaded directly.  Drag and drop the file onto this window to open it."
        )
    if state.reason is Reason.SIZE_UNKNOWN:
        return (
            f"The size of {name} could not be determined.  "
            f"Please drag and drop the file onto this window, or choose it again."
        )
    return (
        f"{name} could not be read.  "
        f"Drag and drop the file onto this window to try again."
    )
