"""Project completion roll-up.

Completion is always derived from summed quantities at each level
(item -> sub-scope -> scope -> project), never from averaged percentages.
Values are summed unrounded and rounded once when reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from jobcost_engine.calculators.types import (
    ZERO,
    percent_of,
    round_percent,
    round_to_cents,
    to_decimal,
)
from jobcost_engine.exceptions import ValidationError

if TYPE_CHECKING:
    from jobcost_engine.models import Project, Scope, SubScope, WorkItemQuantity


def validate_progress(quantity: Decimal, completed: Decimal) -> None:
    """Check a quantity/completed pair before it is stored.

    Raises:
        ValidationError: If either value is negative or completed exceeds quantity
    """
    if quantity < 0:
        raise ValidationError("quantity", "must not be negative")
    if completed < 0:
        raise ValidationError("completed", "must not be negative")
    if completed > quantity:
        raise ValidationError(
            "completed", f"completed {completed} exceeds quantity {quantity}"
        )


@dataclass
class ItemCompletion:
    work_item_id: UUID
    code: str
    name: str
    unit: str
    unit_price: Decimal
    quantity: Decimal
    completed: Decimal

    @property
    def completion_pct(self) -> Decimal:
        return percent_of(self.completed, self.quantity)

    @property
    def value(self) -> Decimal:
        return self.completed * self.unit_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "work_item_id": str(self.work_item_id),
            "code": self.code,
            "name": self.name,
            "unit": self.unit,
            "unit_price": str(self.unit_price),
            "quantity": str(self.quantity),
            "completed": str(self.completed),
            "completion_pct": str(round_percent(self.completion_pct)),
            "value": str(round_to_cents(self.value)),
        }


@dataclass
class SubScopeCompletion:
    sub_scope_id: UUID
    code: str
    name: str
    items: list[ItemCompletion] = field(default_factory=list)

    @property
    def quantity(self) -> Decimal:
        return sum((i.quantity for i in self.items), ZERO)

    @property
    def completed(self) -> Decimal:
        return sum((i.completed for i in self.items), ZERO)

    @property
    def completion_pct(self) -> Decimal:
        return percent_of(self.completed, self.quantity)

    @property
    def value(self) -> Decimal:
        return sum((i.value for i in self.items), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sub_scope_id": str(self.sub_scope_id),
            "code": self.code,
            "name": self.name,
            "quantity": str(self.quantity),
            "completed": str(self.completed),
            "completion_pct": str(round_percent(self.completion_pct)),
            "value": str(round_to_cents(self.value)),
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class ScopeCompletion:
    scope_id: UUID
    code: str
    name: str
    sub_scopes: list[SubScopeCompletion] = field(default_factory=list)

    @property
    def quantity(self) -> Decimal:
        return sum((s.quantity for s in self.sub_scopes), ZERO)

    @property
    def completed(self) -> Decimal:
        return sum((s.completed for s in self.sub_scopes), ZERO)

    @property
    def completion_pct(self) -> Decimal:
        return percent_of(self.completed, self.quantity)

    @property
    def value(self) -> Decimal:
        return sum((s.value for s in self.sub_scopes), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope_id": str(self.scope_id),
            "code": self.code,
            "name": self.name,
            "quantity": str(self.quantity),
            "completed": str(self.completed),
            "completion_pct": str(round_percent(self.completion_pct)),
            "value": str(round_to_cents(self.value)),
            "sub_scopes": [s.to_dict() for s in self.sub_scopes],
        }


@dataclass
class ProjectCompletion:
    """Completion of a whole project by quantity and by value."""

    project_id: UUID
    contract_value: Decimal
    scopes: list[ScopeCompletion] = field(default_factory=list)

    @property
    def quantity(self) -> Decimal:
        return sum((s.quantity for s in self.scopes), ZERO)

    @property
    def completed(self) -> Decimal:
        return sum((s.completed for s in self.scopes), ZERO)

    @property
    def quantity_completion_pct(self) -> Decimal:
        return percent_of(self.completed, self.quantity)

    @property
    def completed_value(self) -> Decimal:
        return sum((s.value for s in self.scopes), ZERO)

    @property
    def value_completion_pct(self) -> Decimal:
        return percent_of(self.completed_value, self.contract_value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": str(self.project_id),
            "contract_value": str(round_to_cents(self.contract_value)),
            "completed_value": str(round_to_cents(self.completed_value)),
            "quantity_completion_pct": str(round_percent(self.quantity_completion_pct)),
            "value_completion_pct": str(round_percent(self.value_completion_pct)),
            "scopes": [s.to_dict() for s in self.scopes],
        }


def item_completion(quantity_row: WorkItemQuantity) -> ItemCompletion:
    work_item = quantity_row.work_item
    return ItemCompletion(
        work_item_id=work_item.work_item_id,
        code=work_item.code,
        name=work_item.name,
        unit=work_item.unit,
        unit_price=to_decimal(work_item.unit_price),
        quantity=to_decimal(quantity_row.quantity),
        completed=to_decimal(quantity_row.completed),
    )


def sub_scope_completion(sub_scope: SubScope) -> SubScopeCompletion:
    return SubScopeCompletion(
        sub_scope_id=sub_scope.sub_scope_id,
        code=sub_scope.code,
        name=sub_scope.name,
        items=[item_completion(q) for q in sub_scope.quantities],
    )


def scope_completion(scope: Scope) -> ScopeCompletion:
    return ScopeCompletion(
        scope_id=scope.scope_id,
        code=scope.code,
        name=scope.name,
        sub_scopes=[sub_scope_completion(s) for s in scope.sub_scopes],
    )


def project_completion(project: Project) -> ProjectCompletion:
    """Roll a loaded project tree up into completion figures.

    Expects ``scopes -> sub_scopes -> quantities -> work_item`` to be loaded.
    """
    return ProjectCompletion(
        project_id=project.project_id,
        contract_value=to_decimal(project.value),
        scopes=[scope_completion(s) for s in project.scopes],
    )
