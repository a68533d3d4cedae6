"""Variant cost ledger endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.exceptions import InvalidCostError
from profit_service.infrastructure.database.connection import get_session
from profit_service.infrastructure.database.models import Variant
from profit_service.services.cost_ledger import CostLedger

router = APIRouter()


class CostRequest(BaseModel):
    """A new cost for a variant."""

    amount: str = Field(..., description="Cost amount as a decimal string, >= 0")
    effective_from: datetime | None = Field(
        None, description="When the cost starts applying (defaults to now)"
    )
    actor: str | None = Field(None, description="Who is making the change, for the audit log")


class CostResponse(BaseModel):
    """One ledger entry."""

    id: int
    variant_id: int
    cost_amount: Decimal
    effective_from: datetime


class CurrentCostResponse(BaseModel):
    """Resolved cost of a variant at a point in time."""

    variant_id: int
    cost_amount: Decimal
    as_of: datetime


async def _require_variant(session: AsyncSession, variant_id: int) -> Variant:
    variant = await session.get(Variant, variant_id)
    if variant is None:
        raise HTTPException(status_code=404, detail="Variant not found")
    return variant


@router.post("/{variant_id}", response_model=CostResponse, status_code=201)
async def record_cost(
    variant_id: int,
    request: CostRequest,
    session: AsyncSession = Depends(get_session),
) -> CostResponse:
    """
    Append a cost for a variant.

    Costs are never edited: a new entry with a later `effective_from`
    supersedes older ones for orders placed after it. Orders already synced
    keep the cost snapshot they were attributed with.
    """
    await _require_variant(session, variant_id)
    try:
        cost = await CostLedger(session).record_cost(
            variant_id,
            request.amount,
            effective_from=request.effective_from,
            actor=request.actor,
        )
    except InvalidCostError as e:
        raise HTTPException(status_code=400, detail=e.message) from e

    return CostResponse(
        id=cost.id,
        variant_id=cost.variant_id,
        cost_amount=cost.cost_amount,
        effective_from=cost.effective_from,
    )


@router.get("/{variant_id}/current", response_model=CurrentCostResponse)
async def get_current_cost(
    variant_id: int,
    at: Annotated[datetime | None, Query(description="Resolve as of this time instead of now")] = None,
    session: AsyncSession = Depends(get_session),
) -> CurrentCostResponse:
    await _require_variant(session, variant_id)
    ledger = CostLedger(session)
    as_of = at or ledger.clock()
    return CurrentCostResponse(
        variant_id=variant_id,
        cost_amount=await ledger.resolve_cost_at(variant_id, as_of),
        as_of=as_of,
    )


@router.get("/{variant_id}/history", response_model=list[CostResponse])
async def get_cost_history(
    variant_id: int,
    session: AsyncSession = Depends(get_session),
) -> list[CostResponse]:
    await _require_variant(session, variant_id)
    entries = await CostLedger(session).cost_history(variant_id)
    return [
        CostResponse(
            id=entry.id,
            variant_id=entry.variant_id,
            cost_amount=entry.cost_amount,
            effective_from=entry.effective_from,
        )
        for entry in entries
    ]
