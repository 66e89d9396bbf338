"""Transit mixer fleet endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query, status

from ...data import tms_repository
from ...schemas.schedules import AverageCapacityResponse, TransitMixerModel
from ...services.scheduling.estimator import average_capacity

router = APIRouter(prefix="/tms", tags=["tms"])


@router.get("", response_model=List[TransitMixerModel], status_code=status.HTTP_200_OK)
def list_transit_mixers(
    active_only: bool = Query(default=False, description="Only return mixers that can be dispatched"),
    plant_id: str | None = Query(default=None, description="Optional plant filter"),
) -> List[TransitMixerModel]:
    mixers = tms_repository.get_active_mixers() if active_only else tms_repository.get_transit_mixers()
    if plant_id:
        mixers = tuple(mixer for mixer in mixers if mixer.plant_id == plant_id)
    return [
        TransitMixerModel(
            id=mixer.id,
            identifier=mixer.identifier,
            capacity=mixer.capacity,
            plant_id=mixer.plant_id,
            plant_name=mixer.plant_name,
            status=mixer.status,
        )
        for mixer in sorted(mixers, key=lambda mixer: mixer.identifier)
    ]


@router.get("/average-capacity", response_model=AverageCapacityResponse, status_code=status.HTTP_200_OK)
def get_average_capacity() -> AverageCapacityResponse:
    """Mean capacity of the active fleet, used to size new schedules."""
    active = tms_repository.get_active_mixers()
    return AverageCapacityResponse(average_capacity=average_capacity(active), active_count=len(active))
