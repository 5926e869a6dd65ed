"""
Tests for the simulation controller and the worker entry point.
"""

import asyncio
from concurrent.futures import Future, ThreadPoolExecutor

import pytest

from dicesim.combat.resolver import CombatSide
from dicesim.core.error_handling import SimulationError
from dicesim.core.rng import XorShiftRng
from dicesim.pipeline.pipeline import Pipeline
from dicesim.pipeline.steps import ElitePromotion
from dicesim.simulation import engine
from dicesim.simulation.controller import OffloadedRunner, SimulationController
from dicesim.simulation.models import AnalysisRequest, CombatRequest
from dicesim.simulation.worker import ANALYSIS, handle_message


def thread_executor():
    return ThreadPoolExecutor(max_workers=1)


@pytest.fixture
def analysis_request(default_faces):
    return AnalysisRequest(
        pool={"RED": 2, "GREEN": 1},
        faces=default_faces,
        simulation_count=300,
        pipeline=Pipeline(steps=[ElitePromotion(max=1)]),
        seed=42,
    )


@pytest.fixture
def combat_request(default_faces):
    return CombatRequest(
        attacker=CombatSide(pool={"RED": 2}),
        defender=CombatSide(pool={"BLUE": 2}, vulnerable=True),
        faces=default_faces,
        simulation_count=300,
        seed=7,
    )


def test_in_process_controller(analysis_request):
    with SimulationController(offload=False) as controller:
        assert not controller.is_offloaded
        results = asyncio.run(controller.run_analysis(analysis_request))
    assert results.simulation_count == 300


def test_offloaded_analysis_matches_in_process(analysis_request):
    with SimulationController(executor_factory=thread_executor) as controller:
        assert controller.is_offloaded
        results = asyncio.run(controller.run_analysis(analysis_request))
        assert controller.runner.pending_count == 0

    expected = engine.run_analysis(analysis_request)
    assert results.hits == expected.hits
    assert results.expected == expected.expected


def test_offloaded_combat_matches_in_process(combat_request):
    with SimulationController(executor_factory=thread_executor) as controller:
        results = asyncio.run(controller.run_combat(combat_request))

    expected = engine.run_combat(combat_request)
    assert results.wounds_attacker == expected.wounds_attacker
    assert results.attacker_win_rate == expected.attacker_win_rate


def test_unavailable_executor_falls_back_in_process(mocker, analysis_request):
    mock_warning = mocker.patch("dicesim.simulation.controller.log_warning")

    def broken_factory():
        raise OSError("no worker processes here")

    controller = SimulationController(executor_factory=broken_factory)
    assert not controller.is_offloaded
    mock_warning.assert_called_once()
    results = asyncio.run(controller.run_analysis(analysis_request))
    assert results.simulation_count == 300


def test_failed_worker_reruns_in_process(mocker, analysis_request):
    mocker.patch(
        "dicesim.simulation.controller.handle_message",
        return_value={"ok": False, "error": "boom"},
    )
    mock_warning = mocker.patch("dicesim.simulation.controller.log_warning")
    with SimulationController(executor_factory=thread_executor) as controller:
        results = asyncio.run(controller.run_analysis(analysis_request))
    assert results.simulation_count == 300
    assert "boom" in mock_warning.call_args[0][0]


def test_crashed_worker_raises_simulation_error(mocker, combat_request):
    mocker.patch(
        "dicesim.simulation.controller.handle_message",
        side_effect=RuntimeError("worker died"),
    )
    runner = OffloadedRunner(thread_executor)
    try:
        with pytest.raises(SimulationError, match="worker died"):
            asyncio.run(runner.run_combat(combat_request))
        assert runner.pending_count == 0
    finally:
        runner.close()


def test_cancelled_worker_job_raises_simulation_error():
    runner = OffloadedRunner(thread_executor)
    job = Future()
    assert job.cancel()

    async def resolve_cancelled():
        pending = asyncio.get_running_loop().create_future()
        runner._pending["req-1"] = pending
        runner._resolve("req-1", job)
        return await pending

    try:
        with pytest.raises(SimulationError, match="cancelled"):
            asyncio.run(resolve_cancelled())
    finally:
        runner.close()


def test_handle_message_runs_seeded_analysis(analysis_request):
    response = handle_message(
        {
            "type": ANALYSIS,
            "request_id": "req-1",
            "seed": 42,
            "payload": analysis_request.to_payload(),
        }
    )
    assert response["ok"]
    assert response["request_id"] == "req-1"
    expected = engine.run_analysis(analysis_request, XorShiftRng(42))
    assert response["data"]["hits"] == expected.hits


def test_handle_message_reports_failures(mocker):
    mock_error = mocker.patch("dicesim.simulation.worker.log_error")
    response = handle_message({"type": "teleport", "request_id": "req-2", "seed": 1})
    assert response == {
        "request_id": "req-2",
        "ok": False,
        "error": "Unknown simulation type: teleport",
    }
    mock_error.assert_called_once()
