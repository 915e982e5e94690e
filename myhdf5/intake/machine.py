"""
IntakeStateMachine — single owner of "what is the intake doing right now".

States (see ``myhdf5.intake.state``):

  Idle ──admit Handle──────────────────────────────▶ Loading ──▶ Idle
  Idle ──admit PathRef──▶ loader ──eligible─────────▶ Loading ──▶ Idle
                                  ├─too large / size unknown──▶ AwaitingUserAction
                                  └─read failed───────────────▶ AwaitingUserAction
  AwaitingUserAction ──re-supplied file──▶ Loading | AwaitingUserAction

A new candidate for a different file discards whatever path is pending.
While a load is in flight (and for a short debounce after it ends) further
candidates are dropped.  The startup probe has its own one-shot marker so a
duplicate probe is rejected even before the first one has admitted anything.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Callable, Optional

from .candidates import CandidateFile, Handle, PathRef
from .loader import Eligible, ReadFailed, SizeGatedLoader
from .platform import Platform
from .state import (
    IDLE, AwaitingUserAction, IntakeState, Loading, Reason,
)

log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_S = 0.5

FileReadyCallback = Callable[[str, bytes], None]
LoadFailedCallback = Callable[[str, Exception], None]
StateListener = Callable[[IntakeState], None]


class LoadGuard:
    """In-flight flag plus the identity of the request holding it."""

    def __init__(self) -> None:
        self.in_flight: bool = False
        self.request_id: int | None = None

    def acquire(self, request_id: int) -> bool:
        if self.in_flight:
            return False
        self.in_flight = True
        self.request_id = request_id
        return True

    def release(self, request_id: int) -> None:
        # Only the holder may release; a stale timer must not free a newer load.
        if self.request_id == request_id:
            self.in_flight = False
            self.request_id = None


class IntakeStateMachine:
    """
    Mediates between intake sources and the size-gated loader.

    Parameters
    ----------
    loader : SizeGatedLoader
        Decides whether a path may be read into memory.
    platform : Platform
        Used for temp-artifact cleanup and the desktop capability check.
    on_file_ready : callable(name, data)
        Receives the content of every successfully loaded file, once.
    on_load_failed : callable(name, error), optional
        Told about reads that failed.
    debounce : float
        Seconds the load guard stays held after a load has finished.
    """

    def __init__(
        self,
        loader: SizeGatedLoader,
        platform: Platform,
        on_file_ready: FileReadyCallback,
        on_load_failed: Optional[LoadFailedCallback] = None,
        debounce: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self._loader = loader
        self._platform = platform
        self._on_file_ready = on_file_ready
        self._on_load_failed = on_load_failed
        self._debounce = max(0.0, float(debounce))
        self._desktop = platform.is_desktop_runtime()

        self._state: IntakeState = IDLE
        self._guard = LoadGuard()
        self._startup_handled = False
        self._request_ids = itertools.count(1)
        self._pending_artifact: str | None = None
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task] = set()

    # ── Read-only view ─────────────────────────────────────────────────────

    @property
    def state(self) -> IntakeState:
        return self._state

    @property
    def threshold(self) -> int:
        return self._loader.threshold

    @property
    def is_loading(self) -> bool:
        return self._guard.in_flight

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener(state)* on every transition.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Admission ──────────────────────────────────────────────────────────

    def begin_startup_probe(self) -> bool:
        """
        Claim the one-and-only startup probe.

        Returns False when the probe was already claimed, or when the
        startup association is not active on this platform.
        """
        if not self._desktop:
            return False
        if self._startup_handled:
            log.debug("Startup file already handled, ignoring duplicate probe")
            return False
        self._startup_handled = True
        return True

    async def admit(self, candidate: CandidateFile) -> bool:
        """
        Run *candidate* through the intake protocol.

        Returns False if the candidate was dropped because another load is
        in flight.  Any error while reading ends the load: the state returns
        to Idle (or to AwaitingUserAction for an unreadable path) and the
        failure goes to ``on_load_failed``.  Errors raised by
        ``on_file_ready`` propagate after the machine has reset.
        """
        request_id = next(self._request_ids)
        if not self._guard.acquire(request_id):
            log.debug(f"Already loading a file, ignoring {candidate.name}")
            return False

        try:
            self._supersede(candidate)
            if isinstance(candidate, PathRef) and candidate.artifact and self._desktop:
                self._pending_artifact = candidate.artifact

            if isinstance(candidate, Handle):
                data = await self._read_handle(candidate)
            else:
                data = await self._read_path(candidate, request_id)
        except Exception as exc:
            self._fail(candidate, exc, request_id)
            return True

        if data is not None:
            self._deliver(candidate.name, data, request_id)
        return True

    async def settle(self) -> None:
        """Wait for background cleanup and guard release to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ── Loading ────────────────────────────────────────────────────────────

    async def _read_handle(self, candidate: Handle) -> bytes:
        self._transition(Loading(candidate.name))
        return await candidate.byte_source.read()

    async def _read_path(self, candidate: PathRef, request_id: int) -> bytes | None:
        name = candidate.name
        outcome = await self._loader.resolve(
            candidate.path,
            on_eligible=lambda _size: self._transition(Loading(name)),
        )

        if isinstance(outcome, Eligible):
            return outcome.data
        if isinstance(outcome, ReadFailed):
            raise outcome.error

        # Too large or size unknown: nothing was read, release without debounce.
        size = getattr(outcome, "size", None)
        self._transition(AwaitingUserAction(name, candidate.path, outcome.reason, size))
        self._guard.release(request_id)
        return None

    def _deliver(self, name: str, data: bytes, request_id: int) -> None:
        log.info(f"Loaded {name} ({len(data)} bytes)")
        try:
            self._on_file_ready(name, data)
        finally:
            self._transition(IDLE)
            self._release_artifact()
            self._release_later(request_id)

    def _fail(self, candidate: CandidateFile, error: Exception, request_id: int) -> None:
        name = candidate.name
        if isinstance(error, OSError):
            log.error(f"Failed to load {name}: {error}")
        else:
            log.exception(f"Unexpected error while loading {name}")

        # An unreadable path stays pending, with its marker, so the user can
        # re-supply it another way.
        if isinstance(candidate, PathRef) and isinstance(error, OSError):
            self._transition(AwaitingUserAction(name, candidate.path, Reason.READ_FAILED))
        else:
            self._transition(IDLE)
            self._release_artifact()
        self._release_later(request_id)
        if self._on_load_failed is not None:
            self._on_load_failed(name, error)

    # ── Superseding / cleanup ──────────────────────────────────────────────

    def _supersede(self, candidate: CandidateFile) -> None:
        current = self._state
        if not isinstance(current, AwaitingUserAction):
            return

        if isinstance(candidate, PathRef):
            same_file = candidate.path == current.path
        else:
            same_file = candidate.name == current.file_name
        if same_file:
            log.debug(f"{candidate.name} re-supplied")
            return

        log.info(f"{candidate.name} supersedes pending {current.file_name}")
        self._release_artifact()
        if isinstance(candidate, PathRef):
            self._transition(IDLE)

    def abandon_artifact(self, name: str) -> None:
        """Request removal of a temp artifact whose path will not be loaded."""
        if self._desktop:
            self._spawn(self._delete_artifact(name))

    def _release_artifact(self) -> None:
        name, self._pending_artifact = self._pending_artifact, None
        if name is None or not self._desktop:
            return
        self._spawn(self._delete_artifact(name))

    async def _delete_artifact(self, name: str) -> None:
        try:
            await self._platform.delete_temp_artifact(name)
        except Exception as exc:
            log.debug(f"Ignoring failed removal of temp artifact {name}: {exc}")

    def _release_later(self, request_id: int) -> None:
        self._spawn(self._release_after_debounce(request_id))

    async def _release_after_debounce(self, request_id: int) -> None:
        await asyncio.sleep(self._debounce)
        self._guard.release(request_id)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ── Transitions ────────────────────────────────────────────────────────

    def _transition(self, new_state: IntakeState) -> None:
        log.debug(f"Intake state {self._state} -> {new_state}")
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                log.exception(f"State listener {listener!r} failed on {new_state}")
