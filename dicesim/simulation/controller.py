"""
Simulation controller for the simulator.

The controller runs requests either in the caller's thread or in a pool of
worker processes. The offloaded path falls back to the in-process one when
the pool cannot be created, and reruns a request in process when a worker
fails.
"""

import asyncio
import itertools
from collections.abc import Callable
from concurrent.futures import Executor, Future, ProcessPoolExecutor
from functools import partial
from typing import Any, Optional

from dicesim.core.error_handling import SimulationError
from dicesim.core.logging import log_debug, log_warning
from dicesim.core.rng import random_seed
from dicesim.simulation import engine
from dicesim.simulation.models import (
    AnalysisRequest,
    AnalysisResults,
    CombatRequest,
    CombatResults,
)
from dicesim.simulation.worker import ANALYSIS, COMBAT, handle_message

ExecutorFactory = Callable[[], Executor]


class InProcessRunner:
    """Runs simulations in the caller's thread."""

    async def run_analysis(self, request: AnalysisRequest) -> AnalysisResults:
        return engine.run_analysis(request)

    async def run_combat(self, request: CombatRequest) -> CombatResults:
        return engine.run_combat(request)

    def close(self) -> None:
        pass


class OffloadedRunner:
    """
    Runs simulations in an executor, by default a process pool.

    Each request gets an id and a pending future. The executor's answer is
    handed back to the event loop and resolves the future registered under
    the id it carries.
    """

    def __init__(self, executor_factory: Optional[ExecutorFactory] = None) -> None:
        """
        Creates the executor.

        Args:
            executor_factory (Optional[ExecutorFactory]): Builds the executor.
                Defaults to ``ProcessPoolExecutor``.

        Raises:
            Exception: Whatever the factory raises when the executor cannot
                be created.

        """
        factory = executor_factory or ProcessPoolExecutor
        self._executor: Executor = factory()
        self._pending: dict[str, asyncio.Future] = {}
        self._ids = itertools.count(1)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _on_done(
        self,
        loop: asyncio.AbstractEventLoop,
        request_id: str,
        future: Future,
    ) -> None:
        """Hands a finished executor job back to the event loop."""
        loop.call_soon_threadsafe(self._resolve, request_id, future)

    def _fail(self, request_id: str, message: str) -> None:
        pending = self._pending.get(request_id)
        if pending is not None and not pending.done():
            pending.set_exception(SimulationError(message))

    def _resolve(self, request_id: str, future: Future) -> None:
        # exception() raises CancelledError on a cancelled job.
        if future.cancelled():
            self._fail(request_id, "Worker job was cancelled")
            return
        exc = future.exception()
        if exc is not None:
            self._fail(request_id, f"Worker crashed: {exc}")
            return

        response = future.result()
        pending = self._pending.get(response.get("request_id", request_id))
        if pending is None or pending.done():
            log_warning("Dropping response for unknown request", {"request_id": request_id})
            return
        if response.get("ok"):
            pending.set_result(response["data"])
        else:
            pending.set_exception(SimulationError(response.get("error", "Unknown error")))

    async def _submit(self, kind: str, request: Any) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        request_id = f"req-{next(self._ids)}"
        seed = request.seed if request.seed is not None else random_seed()
        message = {
            "type": kind,
            "request_id": request_id,
            "seed": seed,
            "payload": request.to_payload(),
        }
        pending = loop.create_future()
        self._pending[request_id] = pending
        log_debug("Offloading simulation", {"request_id": request_id, "type": kind})
        try:
            job = self._executor.submit(handle_message, message)
            job.add_done_callback(partial(self._on_done, loop, request_id))
            return await pending
        finally:
            self._pending.pop(request_id, None)

    async def run_analysis(self, request: AnalysisRequest) -> AnalysisResults:
        data = await self._submit(ANALYSIS, request)
        return AnalysisResults.model_validate(data)

    async def run_combat(self, request: CombatRequest) -> CombatResults:
        data = await self._submit(COMBAT, request)
        return CombatResults.model_validate(data)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


class SimulationController:
    """Runs simulations through the selected runner, falling back in process."""

    def __init__(
        self,
        offload: bool = True,
        executor_factory: Optional[ExecutorFactory] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            offload (bool): Whether to run simulations in worker processes.
            executor_factory (Optional[ExecutorFactory]): Builds the executor
                used when offloading.

        """
        self._in_process = InProcessRunner()
        self.runner: InProcessRunner | OffloadedRunner = self._in_process
        if offload:
            try:
                self.runner = OffloadedRunner(executor_factory)
            except Exception as e:
                log_warning(
                    f"Cannot start simulation workers, running in process: {e}",
                    {"error": str(e)},
                )

    @property
    def is_offloaded(self) -> bool:
        return self.runner is not self._in_process

    async def run_analysis(self, request: AnalysisRequest) -> AnalysisResults:
        """
        Runs an analysis.

        Args:
            request (AnalysisRequest): What to simulate.

        Returns:
            AnalysisResults: The results.

        Raises:
            Exception: Only when the in-process run itself fails.

        """
        if not self.is_offloaded:
            return await self._in_process.run_analysis(request)
        try:
            return await self.runner.run_analysis(request)
        except Exception as e:
            log_warning(
                f"Offloaded analysis failed, rerunning in process: {e}",
                {"error": str(e)},
            )
            return await self._in_process.run_analysis(request)

    async def run_combat(self, request: CombatRequest) -> CombatResults:
        """Runs a combat simulation, see ``run_analysis``."""
        if not self.is_offloaded:
            return await self._in_process.run_combat(request)
        try:
            return await self.runner.run_combat(request)
        except Exception as e:
            log_warning(
                f"Offloaded combat failed, rerunning in process: {e}",
                {"error": str(e)},
            )
            return await self._in_process.run_combat(request)

    def close(self) -> None:
        self.runner.close()

    def __enter__(self) -> "SimulationController":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
