"""API routes for emergency overrides."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from ..core import ClockDep, CurrentUserDep, SessionDep
from ..schemas import ErrorResponse, OverrideCreate, OverrideListResponse, OverrideResponse
from ..services import OverrideGate

router = APIRouter(prefix="/emergency-override", tags=["emergency-override"])


def get_gate(session: SessionDep, clock: ClockDep) -> OverrideGate:
    return OverrideGate(session, clock)


GateDep = Annotated[OverrideGate, Depends(get_gate)]


@router.get("", response_model=OverrideListResponse)
async def list_overrides(
    current_user: CurrentUserDep,
    gate: GateDep,
    clock: ClockDep,
):
    """Your 20 most recent overrides and the ones still running."""
    listing = await gate.list_overrides(current_user.id)
    return OverrideListResponse.from_listing(listing, clock.now())


@router.post(
    "",
    response_model=OverrideResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse, "description": "Override limit reached"},
    },
)
async def activate_override(
    data: OverrideCreate,
    current_user: CurrentUserDep,
    gate: GateDep,
    clock: ClockDep,
):
    override = await gate.activate_override(data.to_input(), current_user.id)
    return OverrideResponse.from_model(override, clock.now())
