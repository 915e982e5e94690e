"""
Shared fixtures: an in-memory platform that records every collaborator call.
"""

import asyncio

import pytest

from myhdf5.intake.loader import SizeGatedLoader
from myhdf5.intake.machine import IntakeStateMachine

GIB = 1 << 30


class FakePlatform:
    """
    Platform double.

    ``sizes`` maps path -> reported size (missing path = size unavailable),
    ``contents`` maps path -> bytes returned by a read.
    """

    artifact_name = "myhdf5_open_file.txt"

    def __init__(self, sizes=None, contents=None, desktop=True, startup_path=None,
                 picks=None, read_errors=(), delete_error=None):
        self.sizes = dict(sizes or {})
        self.contents = dict(contents or {})
        self.desktop = desktop
        self.startup_path = startup_path
        self.picks = list(picks or [])
        self.read_errors = set(read_errors)
        self.delete_error = delete_error

        self.stat_calls = []
        self.read_calls = []
        self.picker_calls = []
        self.startup_calls = 0
        self.deleted = []

    def is_desktop_runtime(self):
        return self.desktop

    async def stat_size(self, path):
        self.stat_calls.append(path)
        await asyncio.sleep(0)
        return self.sizes.get(path)

    async def read_all_bytes(self, path):
        self.read_calls.append(path)
        await asyncio.sleep(0)
        if path in self.read_errors:
            raise OSError(f"cannot read {path}")
        return self.contents.get(path, b"")

    async def open_native_file_picker(self, hint_path=None):
        self.picker_calls.append(hint_path)
        await asyncio.sleep(0)
        return self.picks.pop(0) if self.picks else None

    async def get_startup_file_path(self):
        self.startup_calls += 1
        await asyncio.sleep(0)
        return self.startup_path

    async def delete_temp_artifact(self, name):
        await asyncio.sleep(0)
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(name)


class Recorder:
    """Collects delivered files, failures and state transitions."""

    def __init__(self):
        self.ready = []
        self.failed = []
        self.states = []

    def on_file_ready(self, name, data):
        self.ready.append((name, data))

    def on_load_failed(self, name, error):
        self.failed.append((name, error))


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_platform():
    return FakePlatform


@pytest.fixture
def make_machine(recorder):
    """Build a state machine on *platform* that reports into ``recorder``."""

    def _make(platform, threshold=GIB, debounce=0.01):
        machine = IntakeStateMachine(
            SizeGatedLoader(platform, threshold),
            platform,
            on_file_ready=recorder.on_file_ready,
            on_load_failed=recorder.on_load_failed,
            debounce=debounce,
        )
        machine.subscribe(recorder.states.append)
        return machine

    return _make
