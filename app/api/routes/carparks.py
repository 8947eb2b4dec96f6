"""
Carpark API Endpoints

GET /api/carparks/{hospital_code} - Live occupancy for a hospital's active car parks
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_store
from app.services.facility_store import FacilityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/carparks", tags=["carparks"])


class CarparkResponse(BaseModel):
    """Live occupancy for one car park"""
    id: int
    hospital_code: str
    name: str
    total: int
    occupied: int
    free: int
    status: str
    last_updated: str


class HospitalCarparksResponse(BaseModel):
    """Response for GET /api/carparks/:hospital_code"""
    hospital: str
    carparks: List[CarparkResponse]


@router.get("/{hospital_code}", response_model=HospitalCarparksResponse)
async def get_hospital_carparks(
    hospital_code: str = Path(..., description="Hospital code (e.g., SJH)"),
    store: FacilityStore = Depends(get_store),
):
    """
    Get live occupancy for all active car parks of a hospital.

    Raises:
        404: If the hospital has no active car parks
        500: If the store cannot be read
    """
    hospital_code = hospital_code.upper()

    try:
        facilities = await store.list_for_hospital(hospital_code)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load car parks for {hospital_code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to load carparks: {str(e)}")

    if not facilities:
        return JSONResponse(
            status_code=404,
            content={
                "error": f"No carparks found for hospital '{hospital_code}'.",
                "hospital": hospital_code,
            },
        )

    carparks = [
        CarparkResponse(
            id=facility.id,
            hospital_code=facility.hospital_code,
            name=facility.name,
            total=facility.total_capacity,
            occupied=facility.occupied,
            free=facility.free,
            status=facility.status or "UNKNOWN",
            last_updated=facility.last_updated.isoformat() if facility.last_updated else "",
        )
        for facility in facilities
    ]

    return HospitalCarparksResponse(hospital=hospital_code, carparks=carparks)
