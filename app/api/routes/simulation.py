"""
Simulation Control API Endpoints

Fire-and-forget controls for the carpark simulation loop:
- GET /sim/status
- POST /sim/start
- POST /sim/pause
- POST /sim/tick
- POST /sim/fastforward
- POST /sim/reset

Except for reset, effects are applied by the loop on its next iteration;
responses do not wait for ticks to run.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from app.api.auth import verify_admin_token
from app.api.dependencies import get_controller
from app.services.simulation_controller import SimulationController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sim", tags=["simulation"])


# Response models
class SimulationStatusResponse(BaseModel):
    """Current run state"""
    running: bool
    status: str


class SimulationMessageResponse(BaseModel):
    """Acknowledgement of a control request"""
    message: str


@router.get("/status", response_model=SimulationStatusResponse)
async def get_simulation_status(controller: SimulationController = Depends(get_controller)):
    """Report whether timed ticks are running"""
    state = controller.snapshot()
    return SimulationStatusResponse(running=state["running"], status=state["status"])


@router.post("/start", response_model=SimulationMessageResponse, dependencies=[Depends(verify_admin_token)])
async def start_simulation(controller: SimulationController = Depends(get_controller)):
    """Resume timed ticks"""
    controller.start()
    return SimulationMessageResponse(message="Simulation Running")


@router.post("/pause", response_model=SimulationMessageResponse, dependencies=[Depends(verify_admin_token)])
async def pause_simulation(controller: SimulationController = Depends(get_controller)):
    """Stop timed ticks; single tick and fast forward still work"""
    controller.pause()
    return SimulationMessageResponse(message="Simulation Paused")


@router.post("/tick", response_model=SimulationMessageResponse, dependencies=[Depends(verify_admin_token)])
async def single_tick(controller: SimulationController = Depends(get_controller)):
    """Queue one extra tick for the next loop iteration"""
    controller.request_single_tick()
    return SimulationMessageResponse(message="Single Tick Executed")


@router.post("/fastforward", response_model=SimulationMessageResponse, dependencies=[Depends(verify_admin_token)])
async def fast_forward(request: Request, controller: SimulationController = Depends(get_controller)):
    """Queue a burst of back-to-back ticks"""
    controller.request_fast_forward(request.app.state.settings.fast_forward_ticks)
    return SimulationMessageResponse(message="Fast Forward Started")


@router.post("/reset", response_model=SimulationMessageResponse, dependencies=[Depends(verify_admin_token)])
async def reset_simulation(controller: SimulationController = Depends(get_controller)):
    """Zero all active car parks and clear the change log immediately"""
    try:
        await controller.reset()
    except SQLAlchemyError as e:
        logger.error(f"Simulation reset failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to reset simulation: {str(e)}")
    return SimulationMessageResponse(message="Simulation Reset Complete")
