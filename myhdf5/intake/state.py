"""
Intake state values.

Exactly one of these is current at any time; the ``IntakeStateMachine`` owns
it and everyone else only reads it (to draw idle / loading / awaiting-action
UI).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


class Reason(enum.Enum):
    TOO_LARGE = "too_large"
    SIZE_UNKNOWN = "size_unknown"
    READ_FAILED = "read_failed"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    label: str


@dataclass(frozen=True)
class AwaitingUserAction:
    file_name: str
    path: str
    reason: Reason
    size: int | None = None


IntakeState = Union[Idle, Loading, AwaitingUserAction]

IDLE = Idle()
