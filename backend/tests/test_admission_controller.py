"""
Admission controller tests.

Time-driven transitions are checked with a manual clock; the controller
re-evaluates deadlines on every call, so no real waiting is needed.
"""

import asyncio

import pytest

from medilens.application.admission import AdmissionController, AdmissionState
from medilens.config.settings import AdmissionConfig
from medilens.infrastructure.storage import InMemoryCooldownStore

from tests.fakes import GatedOrchestrator, ManualClock, make_image


KEY = AdmissionConfig().storage_key


def _controller(orchestrator=None, store=None, clock=None, cooldown=60, dwell=4):
    config = AdmissionConfig(cooldown_seconds=cooldown, results_dwell_seconds=dwell, store="memory")
    return AdmissionController(
        orchestrator or GatedOrchestrator(),
        store if store is not None else InMemoryCooldownStore(),
        config=config,
        clock=clock or ManualClock(),
    )


async def _complete_one(controller, orchestrator, source="a"):
    assert controller.submit([make_image(source)])
    orchestrator.open()
    await controller.current_run


@pytest.mark.asyncio
async def test_runs_are_single_flight_and_fifo():
    clock = ManualClock()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, clock=clock)

    assert controller.start_scan()
    assert controller.submit([make_image("a"), make_image("b"), make_image("c")])
    await asyncio.sleep(0)

    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.ANALYZING
    assert snapshot.queue_length == 2
    assert snapshot.run_in_flight

    # Submitting during a run only queues
    assert controller.submit([make_image("d")])
    assert controller.current_state().queue_length == 3
    assert len(orchestrator.requests) == 1

    orchestrator.open()
    await controller.current_run
    assert controller.current_state().state == AdmissionState.RESULTS

    for _ in range(3):
        clock.advance(60)
        assert controller.current_state().state == AdmissionState.ANALYZING
        await controller.current_run

    assert [r.image.source for r in orchestrator.requests] == ["a", "b", "c", "d"]
    assert orchestrator.max_active == 1


@pytest.mark.asyncio
async def test_submit_from_idle_dispatches_immediately():
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator)

    assert controller.submit([make_image()])
    assert controller.current_state().state == AdmissionState.ANALYZING
    assert controller.current_state().queue_length == 0

    orchestrator.open()
    await controller.current_run


def test_empty_submit_is_rejected():
    controller = _controller()
    assert not controller.submit([])
    assert controller.current_state().state == AdmissionState.IDLE


@pytest.mark.asyncio
async def test_every_run_arms_and_persists_a_cooldown():
    clock = ManualClock()
    store = InMemoryCooldownStore()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, store, clock)

    await _complete_one(controller, orchestrator)

    # The fake orchestrator always fails; failed runs still cost a cooldown
    assert controller.latest_result().is_failure
    assert store.get(KEY) == clock.now_ms + 60_000


class ReadOnlyStore(InMemoryCooldownStore):
    """Store whose writes fail like a full or read-only disk."""

    def set(self, key, value):
        raise OSError("disk full")

    def delete(self, key):
        raise OSError("disk full")


@pytest.mark.asyncio
async def test_failed_cooldown_write_still_reaches_results():
    clock = ManualClock()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, ReadOnlyStore(), clock)

    await _complete_one(controller, orchestrator)

    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.RESULTS
    assert controller.latest_result() is not None
    # The in-memory window still gates admissions
    assert snapshot.cooldown_remaining == 60
    assert not controller.submit([make_image("b")])

    clock.advance(64)
    assert controller.current_state().state == AdmissionState.IDLE
    assert controller.start_scan()
    assert controller.restart()


@pytest.mark.asyncio
async def test_results_and_cooldown_reject_new_work():
    clock = ManualClock()
    store = InMemoryCooldownStore()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, store, clock)

    await _complete_one(controller, orchestrator)
    assert controller.current_state().state == AdmissionState.RESULTS
    assert not controller.submit([make_image("b")])
    assert not controller.start_scan()

    assert controller.advance()
    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.COOLDOWN
    assert snapshot.cooldown_remaining == 60
    assert snapshot.cooldown_remaining_ms == 60_000
    assert not controller.submit([make_image("b")])
    assert not controller.advance()

    clock.advance(29.5)
    assert controller.current_state().cooldown_remaining == 31

    clock.advance(30.5)
    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.IDLE
    assert snapshot.cooldown_remaining == 0
    assert store.get(KEY) is None
    assert controller.start_scan()
    assert len(orchestrator.requests) == 1


@pytest.mark.asyncio
async def test_results_dwell_elapses_into_cooldown():
    clock = ManualClock()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, clock=clock)

    await _complete_one(controller, orchestrator)
    clock.advance(3.9)
    assert controller.current_state().state == AdmissionState.RESULTS
    clock.advance(0.1)
    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.COOLDOWN
    assert snapshot.cooldown_remaining == 56


@pytest.mark.asyncio
async def test_queue_survives_cooldown_and_is_dispatched_after():
    clock = ManualClock()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, clock=clock)

    assert controller.submit([make_image("a"), make_image("b")])
    orchestrator.open()
    await controller.current_run

    assert controller.advance()
    assert controller.current_state().queue_length == 1
    clock.advance(60)
    assert controller.current_state().state == AdmissionState.ANALYZING
    await controller.current_run
    assert [r.image.source for r in orchestrator.requests] == ["a", "b"]


@pytest.mark.asyncio
async def test_restart_is_rejected_while_analyzing():
    store = InMemoryCooldownStore()
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, store)

    assert controller.submit([make_image("a"), make_image("b")])
    await asyncio.sleep(0)
    assert not controller.restart()
    assert controller.current_state().state == AdmissionState.ANALYZING

    orchestrator.open()
    await controller.current_run

    assert controller.restart()
    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.IDLE
    assert snapshot.queue_length == 0
    assert snapshot.cooldown_remaining_ms == 0
    assert store.get(KEY) is None
    assert controller.latest_result() is None


def test_restart_is_idempotent():
    controller = _controller()
    assert controller.restart()
    assert controller.restart()
    assert controller.current_state().state == AdmissionState.IDLE


def test_persisted_cooldown_is_restored():
    clock = ManualClock()
    store = InMemoryCooldownStore({KEY: clock.now_ms + 20_000})
    controller = _controller(store=store, clock=clock)

    snapshot = controller.current_state()
    assert snapshot.state == AdmissionState.COOLDOWN
    assert snapshot.cooldown_remaining == 20
    assert not controller.start_scan()

    clock.advance(20)
    assert controller.current_state().state == AdmissionState.IDLE
    assert store.get(KEY) is None


def test_expired_persisted_cooldown_is_discarded():
    clock = ManualClock()
    store = InMemoryCooldownStore({KEY: clock.now_ms - 1})
    controller = _controller(store=store, clock=clock)

    assert controller.current_state().state == AdmissionState.IDLE
    assert store.get(KEY) is None


@pytest.mark.asyncio
async def test_zero_cooldown_returns_straight_to_idle():
    orchestrator = GatedOrchestrator()
    controller = _controller(orchestrator, cooldown=0, dwell=0)

    await _complete_one(controller, orchestrator)

    assert controller.current_state().state == AdmissionState.IDLE


@pytest.mark.asyncio
async def test_wakeups_drive_transitions_without_polling():
    orchestrator = GatedOrchestrator()
    controller = AdmissionController(
        orchestrator,
        InMemoryCooldownStore(),
        config=AdmissionConfig(cooldown_seconds=0.05, results_dwell_seconds=0.01, store="memory"),
    )

    await _complete_one(controller, orchestrator)
    assert controller.state == AdmissionState.RESULTS

    await asyncio.sleep(0.3)
    # ``state`` does not re-evaluate deadlines; only the wake-ups moved it
    assert controller.state == AdmissionState.IDLE


def test_snapshot_serializes_state_name():
    data = _controller().current_state().to_dict()
    assert data == {
        "state": "idle",
        "queue_length": 0,
        "cooldown_remaining": 0,
        "cooldown_remaining_ms": 0,
        "run_in_flight": False,
    }
