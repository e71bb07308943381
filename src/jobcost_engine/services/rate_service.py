"""Union class rate schedule maintenance."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobcost_engine.calculators.rate_resolver import RateResolver
from jobcost_engine.calculators.types import RateResolution
from jobcost_engine.exceptions import NotFoundError, ValidationError
from jobcost_engine.models import BaseRate, CustomRate, UnionClass

logger = logging.getLogger(__name__)


class RateService:
    """Service for appending to a union class's rate history.

    Base rates are append-only: adding a rate closes the currently open one
    on the new rate's effective date, so intervals never overlap except on
    that boundary day, where the newer rate wins.
    """

    def __init__(self, session: AsyncSession, company_id: UUID):
        self.session = session
        self.company_id = company_id
        self.resolver = RateResolver(session)

    async def get_union_class(self, union_class_id: UUID, for_update: bool = False) -> UnionClass:
        query = select(UnionClass).where(
            UnionClass.union_class_id == union_class_id,
            UnionClass.company_id == self.company_id,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        union_class = result.scalar_one_or_none()
        if union_class is None:
            raise NotFoundError("UnionClass", union_class_id)
        return union_class

    async def resolve(self, union_class_id: UUID, as_of_date: date) -> RateResolution:
        """Resolve a union class's rate, checking it belongs to the caller."""
        await self.get_union_class(union_class_id)
        return await self.resolver.resolve_rate(union_class_id, as_of_date)

    async def active_custom_rates(self, union_class_id: UUID, as_of_date: date) -> list[CustomRate]:
        await self.get_union_class(union_class_id)
        return await self.resolver.active_custom_rates(union_class_id, as_of_date)

    async def add_base_rate(
        self,
        union_class_id: UUID,
        regular_rate: Decimal,
        overtime_rate: Decimal,
        benefits_rate: Decimal,
        effective_date: date,
    ) -> BaseRate:
        """Append a new open base rate, closing the current one.

        Raises:
            NotFoundError: If the union class is not the caller's
            ValidationError: If a rate is negative or effective_date is not
                after the latest existing rate's effective date
        """
        for field_name, value in (
            ("regular_rate", regular_rate),
            ("overtime_rate", overtime_rate),
            ("benefits_rate", benefits_rate),
        ):
            if Decimal(value) < 0:
                raise ValidationError(field_name, "must not be negative")

        # The class row locks its whole schedule, even an empty one.
        # Rates must be read after the lock is held.
        await self.get_union_class(union_class_id, for_update=True)

        result = await self.session.execute(
            select(BaseRate)
            .where(BaseRate.union_class_id == union_class_id)
            .order_by(BaseRate.effective_date.desc())
            .execution_options(populate_existing=True)
        )
        existing = list(result.scalars().all())

        if existing and effective_date <= existing[0].effective_date:
            raise ValidationError(
                "effective_date",
                f"must be after the latest rate's effective date {existing[0].effective_date}",
            )

        for rate in existing:
            if rate.is_open:
                rate.end_date = effective_date

        new_rate = BaseRate(
            union_class_id=union_class_id,
            regular_rate=Decimal(regular_rate),
            overtime_rate=Decimal(overtime_rate),
            benefits_rate=Decimal(benefits_rate),
            effective_date=effective_date,
        )
        self.session.add(new_rate)
        await self.session.flush()

        logger.info(
            "Added base rate %s for union class %s effective %s",
            new_rate.base_rate_id,
            union_class_id,
            effective_date,
        )
        return new_rate

    async def add_custom_rate(
        self,
        union_class_id: UUID,
        name: str,
        rate: Decimal,
        effective_date: date,
        end_date: date | None = None,
        description: str | None = None,
        is_percentage: bool = False,
    ) -> CustomRate:
        """Add a supplemental rate to a union class.

        Raises:
            NotFoundError: If the union class is not the caller's
            ValidationError: If the interval is inverted or the rate negative
        """
        if end_date is not None and end_date < effective_date:
            raise ValidationError("end_date", "must not be before effective_date")
        if Decimal(rate) < 0:
            raise ValidationError("rate", "must not be negative")

        await self.get_union_class(union_class_id)

        custom_rate = CustomRate(
            union_class_id=union_class_id,
            name=name,
            description=description,
            rate=Decimal(rate),
            is_percentage=is_percentage,
            effective_date=effective_date,
            end_date=end_date,
        )
        self.session.add(custom_rate)
        await self.session.flush()

        logger.info("Added custom rate %r for union class %s", name, union_class_id)
        return custom_rate

    async def list_base_rates(self, union_class_id: UUID) -> list[BaseRate]:
        """List a class's base rates, newest first."""
        await self.get_union_class(union_class_id)
        result = await self.session.execute(
            select(BaseRate)
            .where(BaseRate.union_class_id == union_class_id)
            .order_by(BaseRate.effective_date.desc())
        )
        return list(result.scalars().all())
