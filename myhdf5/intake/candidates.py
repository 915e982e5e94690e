"""
Candidate files — what an intake source hands to the state machine.

A candidate is either a ``Handle`` (content already addressable as a byte
source, e.g. a dropped file) or a ``PathRef`` (a bare filesystem path whose
size must be checked before anything is read).
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol, Union

# ── Extensions treated as HDF5 / NeXus files ───────────────────────────────
RECOGNIZED_EXTENSIONS = (".h5", ".hdf5", ".hdf", ".nxs", ".nx", ".nexus")

HDF5_MIME_TYPE = "application/x-hdf5"


def file_name(path: str) -> str:
    """Last component of *path*, accepting both ``/`` and ``\\`` separators."""
    return re.split(r"[\\/]", path)[-1]


def is_recognized(name: str) -> bool:
    """True if *name* ends with one of the recognized HDF5/NeXus extensions."""
    return name.lower().endswith(RECOGNIZED_EXTENSIONS)


def first_recognized(paths: Iterable[str]) -> tuple[str | None, list[str]]:
    """Return ``(first recognized path, names of the rejected ones)``."""
    chosen = None
    rejected = []
    for path in paths:
        if chosen is None and is_recognized(path):
            chosen = path
        elif not is_recognized(path):
            rejected.append(file_name(path))
    return chosen, rejected


class ByteSource(Protocol):
    async def read(self) -> bytes: ...


@dataclass(frozen=True)
class FileByteSource:
    """Content of a local file, streamed on demand."""

    path: str

    async def read(self) -> bytes:
        return await asyncio.to_thread(Path(self.path).read_bytes)


@dataclass(frozen=True)
class MemoryByteSource:
    """Content that is already in memory (e.g. the MIME payload of a drop)."""

    data: bytes

    async def read(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class Handle:
    name: str
    byte_source: ByteSource


@dataclass(frozen=True)
class PathRef:
    path: str
    artifact: str | None = None   # temp marker that announced this path

    @property
    def name(self) -> str:
        return file_name(self.path)


CandidateFile = Union[Handle, PathRef]
