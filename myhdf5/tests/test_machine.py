"""
Unit tests for the intake state machine.

Tests cover:
  - Path candidates: direct load, too large, size unknown, read failure
  - Handle candidates: unconditional load, read failure
  - Admission guard: concurrent admits, debounce after a load, recovery
    from unexpected errors and failing listeners
  - Superseding a pending file, re-supplying the same file
  - Startup probe idempotence and temp-artifact cleanup
"""

import asyncio

import pytest

from myhdf5.intake.candidates import Handle, MemoryByteSource, PathRef
from myhdf5.intake.loader import SizeGatedLoader
from myhdf5.intake.machine import IntakeStateMachine, LoadGuard
from myhdf5.intake.sources import DropAdapter, NativeDialogAdapter, StartupAdapter
from myhdf5.intake.state import IDLE, AwaitingUserAction, Loading, Reason

GIB = 1 << 30
ARTIFACT = "myhdf5_open_file.txt"


class FailingSource:
    async def read(self):
        raise OSError("device went away")


class ExhaustedSource:
    async def read(self):
        raise MemoryError("file does not fit in memory")


# ──────────────────────────────────────────────────────────────────────────────
# Path candidates
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestPathCandidates:
    async def test_small_path_loads(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/a.h5": 4}, contents={"/d/a.h5": b"abcd"})
        machine = make_machine(platform)

        assert await machine.admit(PathRef("/d/a.h5"))
        await machine.settle()

        assert recorder.ready == [("a.h5", b"abcd")]
        assert recorder.states == [Loading("a.h5"), IDLE]
        assert machine.state == IDLE
        assert platform.read_calls == ["/d/a.h5"]
        assert platform.picker_calls == []

    async def test_too_large_awaits_user(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/big.h5": 2 * GIB})
        machine = make_machine(platform)

        await machine.admit(PathRef("/d/big.h5"))

        assert machine.state == AwaitingUserAction("big.h5", "/d/big.h5", Reason.TOO_LARGE, 2 * GIB)
        assert recorder.states == [machine.state]
        assert platform.read_calls == []
        assert recorder.ready == []
        assert not machine.is_loading

    async def test_size_unknown_awaits_user(self, make_platform, make_machine, recorder):
        platform = make_platform()
        machine = make_machine(platform)

        await machine.admit(PathRef("/d/a.h5"))

        assert machine.state == AwaitingUserAction("a.h5", "/d/a.h5", Reason.SIZE_UNKNOWN)
        assert platform.read_calls == []

    async def test_read_failure_reported(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/a.h5": 4}, read_errors={"/d/a.h5"})
        machine = make_machine(platform)

        await machine.admit(PathRef("/d/a.h5"))
        await machine.settle()

        assert machine.state == AwaitingUserAction("a.h5", "/d/a.h5", Reason.READ_FAILED)
        assert [name for name, _ in recorder.failed] == ["a.h5"]
        assert recorder.ready == []

    async def test_windows_path_name(self, make_platform, make_machine, recorder):
        path = "C:\\data\\scan.nxs"
        platform = make_platform(sizes={path: 1}, contents={path: b"x"})
        machine = make_machine(platform)

        await machine.admit(PathRef(path))
        assert recorder.ready == [("scan.nxs", b"x")]


# ──────────────────────────────────────────────────────────────────────────────
# Handle candidates
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestHandleCandidates:
    async def test_handle_loads_without_stat(self, make_platform, make_machine, recorder):
        platform = make_platform()
        machine = make_machine(platform, threshold=1)

        await machine.admit(Handle("a.h5", MemoryByteSource(b"large content")))

        assert recorder.ready == [("a.h5", b"large content")]
        assert recorder.states == [Loading("a.h5"), IDLE]
        assert platform.stat_calls == []

    async def test_handle_read_failure_returns_to_idle(self, make_platform, make_machine, recorder):
        machine = make_machine(make_platform())

        await machine.admit(Handle("a.h5", FailingSource()))
        await machine.settle()

        assert recorder.states == [Loading("a.h5"), IDLE]
        assert [name for name, _ in recorder.failed] == ["a.h5"]
        assert recorder.ready == []


# ──────────────────────────────────────────────────────────────────────────────
# Admission guard
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestAdmissionGuard:
    async def test_concurrent_admits_load_once(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/a.h5": 1}, contents={"/d/a.h5": b"x"})
        machine = make_machine(platform)

        results = await asyncio.gather(
            machine.admit(PathRef("/d/a.h5")),
            machine.admit(Handle("b.h5", MemoryByteSource(b"y"))),
        )

        assert results == [True, False]
        assert recorder.ready == [("a.h5", b"x")]
        assert recorder.states.count(Loading("a.h5")) == 1

    async def test_guard_held_during_debounce(self, make_platform, make_machine, recorder):
        machine = make_machine(make_platform(), debounce=0.05)

        await machine.admit(Handle("a.h5", MemoryByteSource(b"x")))
        assert machine.state == IDLE
        assert machine.is_loading

        # Trailing duplicate of the same platform event is absorbed.
        assert not await machine.admit(Handle("a.h5", MemoryByteSource(b"x")))

        await machine.settle()
        assert not machine.is_loading
        assert await machine.admit(Handle("b.h5", MemoryByteSource(b"y")))
        assert [name for name, _ in recorder.ready] == ["a.h5", "b.h5"]

    async def test_guard_released_after_failure(self, make_platform, make_machine):
        machine = make_machine(make_platform())
        await machine.admit(Handle("a.h5", FailingSource()))
        await machine.settle()
        assert not machine.is_loading

    async def test_unexpected_read_error_resets(self, make_platform, make_machine, recorder):
        machine = make_machine(make_platform())

        assert await machine.admit(Handle("a.h5", ExhaustedSource()))
        await machine.settle()

        assert machine.state == IDLE
        assert not machine.is_loading
        assert [(name, type(err)) for name, err in recorder.failed] == [("a.h5", MemoryError)]

        assert await machine.admit(Handle("b.h5", MemoryByteSource(b"y")))
        assert recorder.ready == [("b.h5", b"y")]

    async def test_unexpected_loader_error_releases_marker(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/a.h5": 1})

        async def broken_stat(path):
            raise ValueError("bad path")

        platform.stat_size = broken_stat
        machine = make_machine(platform)

        await machine.admit(PathRef("/d/a.h5", artifact=ARTIFACT))
        await machine.settle()

        assert machine.state == IDLE
        assert not machine.is_loading
        assert platform.deleted == [ARTIFACT]

    async def test_failing_listener_does_not_wedge(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/big.h5": 2 * GIB, "/d/a.h5": 1},
                                 contents={"/d/a.h5": b"x"})
        machine = make_machine(platform)

        def broken_listener(state):
            raise RuntimeError("listener crashed")

        machine.subscribe(broken_listener)

        await machine.admit(PathRef("/d/big.h5"))
        assert isinstance(machine.state, AwaitingUserAction)
        assert not machine.is_loading

        assert await machine.admit(PathRef("/d/a.h5"))
        await machine.settle()
        assert recorder.ready == [("a.h5", b"x")]
        assert machine.state == IDLE

    async def test_consumer_error_still_resets(self, make_platform):
        def broken_consumer(name, data):
            raise RuntimeError("viewer crashed")

        platform = make_platform()
        machine = IntakeStateMachine(
            SizeGatedLoader(platform, GIB), platform, broken_consumer, debounce=0,
        )
        with pytest.raises(RuntimeError):
            await machine.admit(Handle("a.h5", MemoryByteSource(b"x")))
        await machine.settle()
        assert machine.state == IDLE
        assert not machine.is_loading


class TestLoadGuard:
    def test_only_holder_releases(self):
        guard = LoadGuard()
        assert guard.acquire(1)
        assert not guard.acquire(2)

        guard.release(2)
        assert guard.in_flight

        guard.release(1)
        assert not guard.in_flight
        assert guard.request_id is None


# ──────────────────────────────────────────────────────────────────────────────
# Superseding and re-supplying
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestSuperseding:
    async def test_drop_of_other_file_supersedes(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/a.h5": 2 * GIB})
        machine = make_machine(platform)
        await machine.admit(PathRef("/d/a.h5", artifact=ARTIFACT))
        assert isinstance(machine.state, AwaitingUserAction)
        recorder.states.clear()

        await machine.admit(Handle("b.h5", MemoryByteSource(b"bbb")))
        await machine.settle()

        assert recorder.states == [Loading("b.h5"), IDLE]
        assert recorder.ready == [("b.h5", b"bbb")]
        # Abandoned startup path: its marker is removed once.
        assert platform.deleted == [ARTIFACT]

    async def test_new_path_supersedes_through_idle(self, make_platform, make_machine, recorder):
        platform = make_platform(
            sizes={"/d/a.h5": 2 * GIB, "/d/b.h5": 2},
            contents={"/d/b.h5": b"bb"},
        )
        machine = make_machine(platform)
        await machine.admit(PathRef("/d/a.h5"))
        recorder.states.clear()

        await machine.admit(PathRef("/d/b.h5"))

        assert recorder.states == [IDLE, Loading("b.h5"), IDLE]
        assert recorder.ready == [("b.h5", b"bb")]

    async def test_too_large_then_dropped(self, make_platform, make_machine, recorder):
        """1 GiB threshold, 2 GiB file: awaiting action, then drag-drop loads it."""
        platform = make_platform(sizes={"/d/big.h5": 2 * GIB})
        machine = make_machine(platform, threshold=GIB)

        await machine.admit(PathRef("/d/big.h5"))
        assert machine.state.reason is Reason.TOO_LARGE

        await DropAdapter(machine).offer_bytes("big.h5", b"all the bytes")
        await machine.settle()

        assert recorder.states[-2:] == [Loading("big.h5"), IDLE]
        assert recorder.ready == [("big.h5", b"all the bytes")]
        assert platform.read_calls == []

    async def test_picker_still_too_large_loops(self, make_platform, make_machine, recorder):
        platform = make_platform(sizes={"/d/big.h5": 2 * GIB}, picks=["/d/big.h5"])
        machine = make_machine(platform)
        await machine.admit(PathRef("/d/big.h5"))
        first = machine.state

        chosen = await NativeDialogAdapter(machine, platform).request(hint_path=first.path)

        assert chosen == PathRef("/d/big.h5")
        assert platform.picker_calls == ["/d/big.h5"]
        assert machine.state == first
        assert isinstance(recorder.states[-1], AwaitingUserAction)
        assert platform.read_calls == []

    async def test_picker_resupply_of_same_file_keeps_marker(self, make_platform, make_machine, recorder):
        platform = make_platform(
            sizes={"/d/a.h5": None}, contents={"/d/a.h5": b"aa"}, picks=["/d/a.h5"],
        )
        machine = make_machine(platform)
        await machine.admit(PathRef("/d/a.h5", artifact=ARTIFACT))
        assert machine.state.reason is Reason.SIZE_UNKNOWN

        platform.sizes["/d/a.h5"] = 2
        await NativeDialogAdapter(machine, platform).request(hint_path="/d/a.h5")
        await machine.settle()

        assert recorder.ready == [("a.h5", b"aa")]
        assert platform.deleted == [ARTIFACT]


# ──────────────────────────────────────────────────────────────────────────────
# Startup probe
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestStartupProbe:
    async def test_duplicate_probe_loads_once(self, make_platform, make_machine, recorder):
        platform = make_platform(
            sizes={"/d/a.h5": 3}, contents={"/d/a.h5": b"abc"}, startup_path="/d/a.h5",
        )
        machine = make_machine(platform)
        adapter = StartupAdapter(machine, platform)

        results = await asyncio.gather(adapter.probe(), adapter.probe())
        await machine.settle()

        assert sorted(results) == [False, True]
        assert platform.startup_calls == 1
        assert recorder.states.count(Loading("a.h5")) == 1
        assert recorder.ready == [("a.h5", b"abc")]
        assert platform.deleted == [ARTIFACT]

    async def test_second_probe_after_completion_rejected(self, make_platform, make_machine, recorder):
        platform = make_platform(
            sizes={"/d/a.h5": 3}, contents={"/d/a.h5": b"abc"}, startup_path="/d/a.h5",
        )
        machine = make_machine(platform)
        adapter = StartupAdapter(machine, platform)

        assert await adapter.probe()
        await machine.settle()
        assert not await adapter.probe()
        assert len(recorder.ready) == 1

    async def test_large_startup_file_keeps_marker_until_handled(
        self, make_platform, make_machine, recorder,
    ):
        platform = make_platform(sizes={"/d/big.h5": 2 * GIB}, startup_path="/d/big.h5")
        machine = make_machine(platform)

        await StartupAdapter(machine, platform).probe()
        await machine.settle()
        assert machine.state.reason is Reason.TOO_LARGE
        assert platform.deleted == []

        await DropAdapter(machine).offer_bytes("big.h5", b"big")
        await machine.settle()
        assert platform.deleted == [ARTIFACT]

    async def test_no_startup_file(self, make_platform, make_machine, recorder):
        platform = make_platform()
        machine = make_machine(platform)

        assert not await StartupAdapter(machine, platform).probe()
        assert machine.state == IDLE
        assert recorder.states == []

    async def test_unrecognized_startup_file_marker_removed(self, make_platform, make_machine, recorder):
        platform = make_platform(startup_path="/d/notes.txt")
        machine = make_machine(platform)

        assert not await StartupAdapter(machine, platform).probe()
        await machine.settle()
        assert platform.stat_calls == []
        assert platform.deleted == [ARTIFACT]

    async def test_not_desktop_is_noop(self, make_platform, make_machine, recorder):
        platform = make_platform(desktop=False, startup_path="/d/a.h5")
        machine = make_machine(platform)

        assert not await StartupAdapter(machine, platform).probe()
        assert platform.startup_calls == 0

    async def test_cleanup_failure_swallowed(self, make_platform, make_machine, recorder):
        platform = make_platform(
            sizes={"/d/a.h5": 1}, contents={"/d/a.h5": b"a"}, startup_path="/d/a.h5",
            delete_error=PermissionError("locked"),
        )
        machine = make_machine(platform)

        await StartupAdapter(machine, platform).probe()
        await machine.settle()

        assert recorder.ready == [("a.h5", b"a")]
        assert machine.state == IDLE
        assert recorder.failed == []


# ──────────────────────────────────────────────────────────────────────────────
# Observers
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestSubscribe:
    async def test_unsubscribe(self, make_platform, make_machine):
        machine = make_machine(make_platform())
        seen = []
        unsubscribe = machine.subscribe(seen.append)

        await machine.admit(Handle("a.h5", MemoryByteSource(b"x")))
        unsubscribe()
        await machine.settle()
        await machine.admit(Handle("b.h5", MemoryByteSource(b"y")))

        assert seen == [Loading("a.h5"), IDLE]
