"""
Size-gated loader.

Given a filesystem path, decide whether the file may be read fully into
memory.  The decision is a three-way branch on the size reported by the
platform:

  * size unavailable        -> ``SizeUnknown``
  * size above threshold    -> ``TooLarge``      (no bytes are read)
  * size within threshold   -> one full read     -> ``Eligible`` / ``ReadFailed``

The threshold is policy: deployments pick their own value, the branch
structure stays the same.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .platform import Platform
from .state import Reason

log = logging.getLogger(__name__)

ONE_GIB = 1 << 30
DEFAULT_SIZE_THRESHOLD = ONE_GIB


@dataclass(frozen=True)
class Eligible:
    data: bytes
    size: int


@dataclass(frozen=True)
class TooLarge:
    size: int
    reason: Reason = Reason.TOO_LARGE


@dataclass(frozen=True)
class SizeUnknown:
    reason: Reason = Reason.SIZE_UNKNOWN


@dataclass(frozen=True)
class ReadFailed:
    error: OSError
    reason: Reason = Reason.READ_FAILED


LoadOutcome = Union[Eligible, TooLarge, SizeUnknown, ReadFailed]


class SizeGatedLoader:
    """
    Stat-then-read loader bounded by a fixed byte threshold.

    Parameters
    ----------
    platform : Platform
        Supplies ``stat_size`` and ``read_all_bytes``.
    threshold : int
        Largest size (inclusive) that is read directly into memory.
    """

    def __init__(self, platform: Platform, threshold: int = DEFAULT_SIZE_THRESHOLD) -> None:
        if threshold <= 0:
            raise ValueError(f"size threshold must be positive, got {threshold}")
        self._platform = platform
        self._threshold = int(threshold)

    @property
    def threshold(self) -> int:
        return self._threshold

    async def resolve(
        self,
        path: str,
        on_eligible: Optional[Callable[[int], None]] = None,
    ) -> LoadOutcome:
        """
        Decide how *path* can be loaded.

        *on_eligible* is called with the file size after the size check has
        passed and before the read starts, so a caller can show progress for
        the read itself.
        """
        if not path:
            raise ValueError("path must be a non-empty string")

        size = await self._platform.stat_size(path)
        if size is None:
            log.info(f"Cannot determine size of {path}")
            return SizeUnknown()

        if size > self._threshold:
            log.info(f"{path} is {size} bytes, above the {self._threshold} byte threshold")
            return TooLarge(size)

        if on_eligible is not None:
            on_eligible(size)

        try:
            data = await self._platform.read_all_bytes(path)
        except OSError as exc:
            log.error(f"Failed to read {path}: {exc}")
            return ReadFailed(exc)

        log.debug(f"Read {len(data)} bytes from {path}")
        return Eligible(data, size)
