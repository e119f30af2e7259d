"""
Decision API Routes: the authority ledger over HTTP.

1. POST /decisions - Create a decision and open its discussion window
2. GET /decisions - List decisions the caller created or owns
3. GET /decisions/{id} - Fetch one decision with its effective status
4. POST /decisions/{id}/lock - Lock once the discussion window has elapsed
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..core import ClockDep, CurrentUserDep, SessionDep
from ..models import DecisionStatus
from ..schemas import DecisionCreate, DecisionResponse, ErrorResponse
from ..services import AuthorityLedger

router = APIRouter(prefix="/decisions", tags=["decisions"])


def get_ledger(session: SessionDep, clock: ClockDep) -> AuthorityLedger:
    return AuthorityLedger(session, clock)


LedgerDep = Annotated[AuthorityLedger, Depends(get_ledger)]


@router.post(
    "",
    response_model=DecisionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_decision(
    data: DecisionCreate,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
):
    """Create a decision owned by you or your partner."""
    view = await ledger.create_decision(data.to_input(), creator_id=current_user.id)
    return DecisionResponse.from_view(view)


@router.get("", response_model=list[DecisionResponse])
async def list_decisions(
    current_user: CurrentUserDep,
    ledger: LedgerDep,
    status: DecisionStatus | None = Query(None, description="Filter on effective status"),
    category: str | None = Query(None),
):
    views = await ledger.list_decisions(current_user.id, status=status, category=category)
    return [DecisionResponse.from_view(v) for v in views]


@router.get(
    "/{decision_id}",
    response_model=DecisionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_decision(
    decision_id: UUID,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
):
    view = await ledger.get_decision(decision_id, current_user.id)
    return DecisionResponse.from_view(view)


@router.post(
    "/{decision_id}/lock",
    response_model=DecisionResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        425: {"model": ErrorResponse, "description": "Discussion window still open"},
    },
)
async def lock_decision(
    decision_id: UUID,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
):
    """Lock a decision. Locks are permanent."""
    view = await ledger.lock_decision(decision_id, current_user.id)
    return DecisionResponse.from_view(view)
