"""Thin controllers over the simulation orchestrator."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from amc_sim.schemas import IntervalUpdate, TriggerRequest, TriggerResult, ok
from amc_sim.services import SimulationOrchestrator
from amc_sim.web.dependencies import get_orchestrator

router = APIRouter(prefix="/api/simulation", tags=["simulation"])

@router.get("/status")
def simulation_status(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    return ok(orchestrator.get_status())


@router.get("/metrics")
def simulation_metrics(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    return ok(orchestrator.get_metrics())


@router.post("/start")
def start_simulation(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    orchestrator.start()
    return ok(orchestrator.get_status())


@router.post("/stop")
def stop_simulation(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    orchestrator.stop()
    return ok(orchestrator.get_status())


@router.post("/pause")
def pause_simulation(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    orchestrator.pause()
    return ok(orchestrator.get_status())


@router.post("/resume")
def resume_simulation(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    orchestrator.resume()
    return ok(orchestrator.get_status())


@router.post("/reset")
def reset_simulation(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    orchestrator.reset()
    return ok(orchestrator.get_status())


@router.post("/customers")
def trigger_customers(
    request: TriggerRequest | None = None,
    orchestrator: SimulationOrchestrator = Depends(get_orchestrator),
) -> dict:
    request = request or TriggerRequest()
    created = orchestrator.create_customers(request.count)
    return ok(TriggerResult(requested=request.count, created=len(created), ids=[c.id for c in created]))


@router.post("/folios")
def trigger_folios(
    request: TriggerRequest | None = None,
    orchestrator: SimulationOrchestrator = Depends(get_orchestrator),
) -> dict:
    request = request or TriggerRequest()
    created = orchestrator.create_folios(request.count)
    return ok(TriggerResult(requested=request.count, created=len(created), ids=[f.id for f in created]))


@router.post("/transactions")
def trigger_transactions(
    request: TriggerRequest | None = None,
    orchestrator: SimulationOrchestrator = Depends(get_orchestrator),
) -> dict:
    request = request or TriggerRequest()
    created = orchestrator.create_transactions(request.count)
    return ok(TriggerResult(requested=request.count, created=len(created), ids=[t.id for t in created]))


@router.post("/settlements")
def trigger_settlements(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    return ok(asdict(orchestrator.process_settlements()))


@router.post("/sips")
def trigger_sip_execution(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    return ok(asdict(orchestrator.execute_due_sips()))


@router.post("/navs")
def trigger_nav_update(orchestrator: SimulationOrchestrator = Depends(get_orchestrator)) -> dict:
    return ok({"updated": orchestrator.update_navs()})


@router.put("/config")
def update_config(
    update: IntervalUpdate,
    orchestrator: SimulationOrchestrator = Depends(get_orchestrator),
) -> dict:
    orchestrator.update_intervals(**update.model_dump(exclude_none=True))
    return ok({"intervals": orchestrator.intervals()})
