"""
Worker entry point for offloaded simulations.

``handle_message`` runs in a worker process. It receives a plain message,
rebuilds the request, runs it with a seeded generator and answers with a
plain response carrying the same ``request_id``.

Message::

    {"type": "analysis" | "combat", "request_id": str, "seed": int, "payload": dict}

Response::

    {"request_id": str, "ok": True, "data": dict}
    {"request_id": str, "ok": False, "error": str}
"""

from typing import Any

from dicesim.core.logging import log_error
from dicesim.core.rng import XorShiftRng
from dicesim.simulation.engine import run_analysis, run_combat
from dicesim.simulation.models import AnalysisRequest, CombatRequest

ANALYSIS = "analysis"
COMBAT = "combat"


def handle_message(message: dict[str, Any]) -> dict[str, Any]:
    """
    Runs the simulation described by a message.

    Args:
        message (dict[str, Any]): The request message.

    Returns:
        dict[str, Any]: The response message. Failures are reported in the
            response rather than raised.

    """
    request_id = message.get("request_id")
    try:
        kind = message.get("type")
        rng = XorShiftRng(int(message["seed"]))
        payload = message.get("payload") or {}
        if kind == ANALYSIS:
            results = run_analysis(AnalysisRequest.model_validate(payload), rng)
        elif kind == COMBAT:
            results = run_combat(CombatRequest.model_validate(payload), rng)
        else:
            raise ValueError(f"Unknown simulation type: {kind}")
        return {"request_id": request_id, "ok": True, "data": results.model_dump()}
    except Exception as e:
        log_error(
            f"Worker failed to run simulation: {e}",
            {"request_id": request_id, "type": message.get("type")},
        )
        return {"request_id": request_id, "ok": False, "error": str(e)}
