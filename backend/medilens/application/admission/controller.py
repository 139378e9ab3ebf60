"""
Admission Controller

Single entry point of the surrounding application. Owns the FIFO request
queue, the single-flight run lock and the cooldown window, and decides
when the pipeline orchestrator may run.

    IDLE ──start_scan──▶ SCANNING ──submit──▶ ANALYZING ──run done──▶ RESULTS
      ▲                                          ▲                       │
      │                                          │ queue non-empty   dwell/advance
      └──────────── queue empty ─────── COOLDOWN expired ◀── COOLDOWN ◀──┘

All transitions happen on the event loop thread. Time-driven transitions
(results dwell, cooldown expiry) are evaluated from ``(now, deadline)``
on every call and on ``loop.call_later`` wake-ups; no countdown state is
kept.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, Any, Optional, Sequence, Union
import asyncio
import logging
import time

from ..pipeline.orchestrator import PipelineOrchestrator
from ...config.settings import AdmissionConfig
from ...domain.entities.scan import ScanRequest
from ...domain.entities.analysis_result import AnalysisResult
from ...domain.ports.cooldown_store import CooldownStorePort
from ...domain.value_objects.image_data import ImageData
from ...domain.value_objects.cooldown_window import CooldownWindow


def epoch_millis() -> int:
    return int(time.time() * 1000)


class AdmissionState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    RESULTS = "results"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class AdmissionSnapshot:
    """
    Point-in-time view of the controller.

    Attributes:
        state: Current admission state
        queue_length: Requests waiting behind the running one
        cooldown_remaining: Whole seconds until the cooldown ends, rounded up
        cooldown_remaining_ms: Milliseconds until the cooldown ends
        run_in_flight: True while an orchestrator run executes
    """

    state: AdmissionState
    queue_length: int
    cooldown_remaining: int
    cooldown_remaining_ms: int
    run_in_flight: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "queue_length": self.queue_length,
            "cooldown_remaining": self.cooldown_remaining,
            "cooldown_remaining_ms": self.cooldown_remaining_ms,
            "run_in_flight": self.run_in_flight,
        }


class AdmissionController:
    """
    Admission state machine.

    Invariants:
    - At most one orchestrator run executes at a time; the run lock is
      held for its whole duration.
    - Queued requests are dispatched strictly in arrival order.
    - Every completed run, failed or not, arms a cooldown of fixed length.

    Usage:
        controller = AdmissionController(orchestrator, JsonFileCooldownStore(path))
        controller.start_scan()
        controller.submit([image_a, image_b])
        snapshot = controller.current_state()
    """

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        store: CooldownStorePort,
        config: Optional[AdmissionConfig] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize the controller and restore a persisted cooldown.

        Args:
            orchestrator: Pipeline that analyzes one request per run
            store: Durable store for the cooldown end timestamp
            config: Cooldown, dwell and storage key settings
            clock: Epoch-milliseconds clock, injectable for tests
        """
        self.config = config or AdmissionConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._orchestrator = orchestrator
        self._store = store
        self._clock = clock or epoch_millis

        self._state = AdmissionState.IDLE
        self._queue: Deque[ScanRequest] = deque()
        self._lock = asyncio.Lock()
        self._current_run: Optional[asyncio.Task] = None
        self._latest: Optional[AnalysisResult] = None
        self._window: Optional[CooldownWindow] = None
        self._results_until_ms: Optional[int] = None
        self._wakeup: Optional[asyncio.TimerHandle] = None

        self._restore_cooldown()

    # -------------------------------------------------------------------------
    # Caller-facing API
    # -------------------------------------------------------------------------

    def start_scan(self) -> bool:
        """
        Open the scanner.

        Returns:
            False when a run is in flight or a cooldown is active
        """
        self._refresh()
        if self._state == AdmissionState.SCANNING:
            return True
        if self._state != AdmissionState.IDLE:
            self.logger.info(f"start_scan rejected in state {self._state.value}")
            return False

        self._set_state(AdmissionState.SCANNING, "scan started")
        return True

    def submit(self, images: Sequence[Union[ImageData, bytes]]) -> bool:
        """
        Enqueue images as ScanRequests in arrival order.

        While a run is in flight the requests are only queued. From IDLE
        or SCANNING the head of the queue is dispatched immediately.

        Returns:
            False when rejected (no images, results showing, or cooldown
            active); the existing queue is retained either way
        """
        self._refresh()
        if not images:
            return False

        if self._state in (AdmissionState.RESULTS, AdmissionState.COOLDOWN):
            self.logger.info(
                f"submit of {len(images)} image(s) rejected in state {self._state.value} "
                f"({self._cooldown_remaining_ms()}ms cooldown left)"
            )
            return False

        requests = [
            ScanRequest(image=image if isinstance(image, ImageData) else ImageData.from_bytes(image))
            for image in images
        ]
        self._queue.extend(requests)
        self.logger.info(f"Queued {len(requests)} request(s), queue length {len(self._queue)}")

        if self._state in (AdmissionState.IDLE, AdmissionState.SCANNING):
            self._dispatch_next()
        return True

    def advance(self) -> bool:
        """Dismiss the results before the dwell time elapses."""
        self._refresh()
        if self._state != AdmissionState.RESULTS:
            return False
        self._enter_cooldown("results dismissed")
        return True

    def restart(self) -> bool:
        """
        Reset to IDLE: clear the queue and the cooldown window.

        Returns:
            False while an orchestrator run is executing
        """
        if self._state == AdmissionState.ANALYZING or self._lock.locked():
            self.logger.info("restart rejected while a run is executing")
            return False

        self._cancel_wakeup()
        self._queue.clear()
        self._clear_cooldown()
        self._results_until_ms = None
        self._latest = None
        if self._state != AdmissionState.IDLE:
            self._set_state(AdmissionState.IDLE, "restart")
        return True

    def current_state(self) -> AdmissionSnapshot:
        self._refresh()
        remaining_ms = self._cooldown_remaining_ms()
        return AdmissionSnapshot(
            state=self._state,
            queue_length=len(self._queue),
            cooldown_remaining=self._window.remaining_seconds(self._clock()) if self._window else 0,
            cooldown_remaining_ms=remaining_ms,
            run_in_flight=self._state == AdmissionState.ANALYZING,
        )

    def latest_result(self) -> Optional[AnalysisResult]:
        return self._latest

    @property
    def current_run(self) -> Optional[asyncio.Task]:
        """Task of the run in flight, or of the last run dispatched."""
        return self._current_run

    @property
    def state(self) -> AdmissionState:
        return self._state

    # -------------------------------------------------------------------------
    # Run execution
    # -------------------------------------------------------------------------

    def _dispatch_next(self) -> None:
        request = self._queue.popleft()
        self._set_state(AdmissionState.ANALYZING, f"dispatching {request}")
        self._current_run = asyncio.get_running_loop().create_task(self._run(request))

    async def _run(self, request: ScanRequest) -> None:
        async with self._lock:
            result = await self._orchestrator.run(request)

            # Armed under the lock: the cooldown starts at run completion
            self._window = CooldownWindow.starting_at(self._clock(), self.config.cooldown_seconds)
            await self._persist_cooldown(self._window)

        self._latest = result
        self._results_until_ms = self._clock() + int(self.config.results_dwell_seconds * 1000)
        self._set_state(
            AdmissionState.RESULTS,
            f"{result} (cooldown until {self._window.end_ms})",
        )
        self._schedule_wakeup()

    # -------------------------------------------------------------------------
    # Time-driven transitions
    # -------------------------------------------------------------------------

    def _refresh(self) -> None:
        """Apply every transition that is due at the current clock time."""
        now = self._clock()

        if self._state == AdmissionState.RESULTS and self._results_until_ms is not None:
            if now >= self._results_until_ms:
                self._enter_cooldown("results dwell elapsed")

        if self._state == AdmissionState.COOLDOWN:
            if self._window is None or not self._window.is_active(now):
                self._on_cooldown_expired()

    def _enter_cooldown(self, reason: str) -> None:
        self._results_until_ms = None
        self._set_state(AdmissionState.COOLDOWN, reason)
        if self._window is None or not self._window.is_active(self._clock()):
            self._on_cooldown_expired()
        else:
            self._schedule_wakeup()

    def _on_cooldown_expired(self) -> None:
        self._clear_cooldown()
        if self._queue and self._has_running_loop():
            self._dispatch_next()
        else:
            self._set_state(AdmissionState.IDLE, "cooldown expired")

    def _schedule_wakeup(self) -> None:
        """Wake up at the next deadline so transitions happen without polling."""
        if not self._has_running_loop():
            return
        now = self._clock()
        if self._state == AdmissionState.RESULTS and self._results_until_ms is not None:
            deadline = self._results_until_ms
        elif self._window is not None:
            deadline = self._window.end_ms
        else:
            return

        self._cancel_wakeup()
        delay = max(0, deadline - now) / 1000
        self._wakeup = asyncio.get_running_loop().call_later(delay, self._on_wakeup)

    def _on_wakeup(self) -> None:
        self._wakeup = None
        self._refresh()
        if self._state in (AdmissionState.RESULTS, AdmissionState.COOLDOWN):
            self._schedule_wakeup()

    def _cancel_wakeup(self) -> None:
        if self._wakeup is not None:
            self._wakeup.cancel()
            self._wakeup = None

    # -------------------------------------------------------------------------
    # Cooldown persistence
    # -------------------------------------------------------------------------

    async def _persist_cooldown(self, window: CooldownWindow) -> None:
        """
        Write the cooldown end off the event loop.

        Persistence is best-effort: the in-memory window already gates
        admissions, so a failed write only loses the cooldown across a
        process restart.
        """
        try:
            await asyncio.to_thread(self._store.set, self.config.storage_key, window.end_ms)
        except Exception as e:
            self.logger.warning(f"Could not persist cooldown end {window.end_ms}: {e}")

    def _restore_cooldown(self) -> None:
        try:
            end_ms = self._store.get(self.config.storage_key)
        except Exception as e:
            self.logger.warning(f"Could not read persisted cooldown: {e}")
            return
        if end_ms is None:
            return

        window = CooldownWindow(end_ms=end_ms)
        if window.is_active(self._clock()):
            self._window = window
            self._state = AdmissionState.COOLDOWN
            self.logger.info(
                f"Restored cooldown, {window.remaining_seconds(self._clock())}s remaining"
            )
        else:
            self._forget_cooldown()

    def _clear_cooldown(self) -> None:
        self._window = None
        self._forget_cooldown()

    def _forget_cooldown(self) -> None:
        try:
            self._store.delete(self.config.storage_key)
        except Exception as e:
            self.logger.warning(f"Could not remove persisted cooldown: {e}")

    def _cooldown_remaining_ms(self) -> int:
        return self._window.remaining_ms(self._clock()) if self._window else 0

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _set_state(self, state: AdmissionState, reason: str) -> None:
        self.logger.info(f"Admission {self._state.value} -> {state.value}: {reason}")
        self._state = state

    @staticmethod
    def _has_running_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True
