"""FastAPI dependencies exposing the per-application simulator components"""
from fastapi import Request

from app.services.facility_store import FacilityStore
from app.services.simulation_controller import SimulationController


def get_controller(request: Request) -> SimulationController:
    return request.app.state.controller


def get_store(request: Request) -> FacilityStore:
    return request.app.state.store
