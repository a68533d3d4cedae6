"""Temporal cost ledger.

Costs are append-only facts ``(variant, amount, effective_from)``. The cost
of a variant at time T is the entry with the latest ``effective_from <= T``.
A variant with no such entry costs 0, so un-costed items report their whole
revenue as profit.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profit_service.exceptions import InvalidCostError
from profit_service.infrastructure.database.models import AuditLog, Cost
from shared.money import ZERO, parse_money, quantize_money, to_naive_utc, utcnow

logger = structlog.get_logger()


class CostLedger:
    """Append and resolve variant costs."""

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    async def record_cost(
        self,
        variant_id: int,
        amount: Any,
        effective_from: datetime | None = None,
        actor: str | None = None,
    ) -> Cost:
        """
        Append a cost entry for a variant.

        Args:
            variant_id: Local variant id
            amount: Cost amount; decimal string or number, must be >= 0
            effective_from: When the cost starts applying (defaults to now)
            actor: Who made the change; when given an audit entry is written

        Returns:
            The new ledger row (flushed, not committed)
        """
        parsed = parse_money(amount, default=None)
        if parsed is None:
            raise InvalidCostError(f"Invalid cost amount: {amount!r}")
        if parsed < 0:
            raise InvalidCostError(f"Cost amount must be >= 0, got {parsed}")

        effective = to_naive_utc(effective_from) if effective_from else self.clock()
        previous = await self.resolve_cost_at(variant_id, effective) if actor else None

        cost = Cost(
            variant_id=variant_id,
            cost_amount=quantize_money(parsed),
            effective_from=effective,
        )
        self.session.add(cost)

        if actor:
            self.session.add(
                AuditLog(
                    actor=actor,
                    action="update_cost",
                    resource_type="variant",
                    resource_id=str(variant_id),
                    old_values={"cost": str(previous)},
                    new_values={
                        "cost": str(cost.cost_amount),
                        "effective_from": effective.isoformat(),
                    },
                )
            )

        await self.session.flush()
        logger.info(
            "Recorded cost",
            variant_id=variant_id,
            cost_amount=str(cost.cost_amount),
            effective_from=effective.isoformat(),
        )
        return cost

    async def resolve_cost_at(self, variant_id: int, as_of: datetime) -> Decimal:
        """Cost in effect at ``as_of``; 0 when nothing was recorded by then."""
        query = (
            select(Cost.cost_amount)
            .where(Cost.variant_id == variant_id)
            .where(Cost.effective_from <= to_naive_utc(as_of))
            .order_by(Cost.effective_from.desc(), Cost.id.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        amount = result.scalar_one_or_none()
        if amount is None:
            return ZERO
        return quantize_money(Decimal(str(amount)))

    async def resolve_current_cost(
        self, variant_id: int, now: datetime | None = None
    ) -> Decimal:
        return await self.resolve_cost_at(variant_id, now or self.clock())

    async def cost_history(self, variant_id: int) -> list[Cost]:
        """All ledger entries for a variant, oldest first."""
        query = (
            select(Cost)
            .where(Cost.variant_id == variant_id)
            .order_by(Cost.effective_from, Cost.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
