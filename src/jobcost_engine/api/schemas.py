"""Pydantic schemas for API request/response models."""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body for every handled failure."""

    detail: str
    code: str


# ============================================================================
# Time entry schemas
# ============================================================================


class EntryIdsRequest(BaseModel):
    """Schema for bulk status changes."""

    time_entry_ids: list[UUID] = Field(min_length=1)


class BulkStatusResponse(BaseModel):
    """Schema for bulk status change response."""

    status: str
    requested: int
    updated: int


class TimeEntryUpdate(BaseModel):
    """Schema for editing a time entry. Only fields sent are changed."""

    project_id: UUID | None = None
    work_date: date | None = None
    regular_hours: Decimal | None = Field(default=None, ge=0)
    overtime_hours: Decimal | None = Field(default=None, ge=0)
    double_hours: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    payment_status: str | None = None


class TimeEntryResponse(BaseModel):
    """Schema for time entry response."""

    model_config = ConfigDict(from_attributes=True)

    time_entry_id: UUID
    employee_id: UUID
    project_id: UUID | None = None
    work_date: date
    regular_hours: Decimal
    overtime_hours: Decimal
    double_hours: Decimal
    notes: str | None = None
    payment_status: str
    payment_id: UUID | None = None


class TimeEntryListResponse(BaseModel):
    """Schema for listing time entries."""

    items: list[TimeEntryResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# Payment schemas
# ============================================================================


class PaymentCreate(BaseModel):
    """Schema for settling approved time entries."""

    employee_id: UUID
    time_entry_ids: list[UUID] = Field(min_length=1)
    payment_date: date
    deductions: Decimal = Field(default=Decimal("0"), ge=0)
    reference: str | None = None
    notes: str | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    payment_id: UUID
    employee_id: UUID
    payment_date: date
    hourly_rate: Decimal
    regular_amount: Decimal
    overtime_amount: Decimal
    double_amount: Decimal
    deductions: Decimal
    total_amount: Decimal
    status: str
    reference: str | None = None
    notes: str | None = None
    time_entry_ids: list[UUID] = []


class PaymentListResponse(BaseModel):
    """Schema for listing payments."""

    items: list[PaymentResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# Rate schemas
# ============================================================================


class CustomRateResponse(BaseModel):
    """Schema for custom rate response."""

    model_config = ConfigDict(from_attributes=True)

    custom_rate_id: UUID
    union_class_id: UUID
    name: str
    description: str | None = None
    rate: Decimal
    is_percentage: bool
    effective_date: date
    end_date: date | None = None


class RateResolutionResponse(BaseModel):
    """Schema for a resolved union class rate."""

    union_class_id: UUID
    as_of_date: date
    configured: bool
    hourly_rate: Decimal | None = None
    base_rate_id: UUID | None = None
    custom_rates: list[CustomRateResponse] = []


class BaseRateCreate(BaseModel):
    """Schema for appending a base rate."""

    regular_rate: Decimal = Field(ge=0)
    overtime_rate: Decimal = Field(ge=0)
    benefits_rate: Decimal = Field(default=Decimal("0"), ge=0)
    effective_date: date


class BaseRateResponse(BaseModel):
    """Schema for base rate response."""

    model_config = ConfigDict(from_attributes=True)

    base_rate_id: UUID
    union_class_id: UUID
    regular_rate: Decimal
    overtime_rate: Decimal
    benefits_rate: Decimal
    effective_date: date
    end_date: date | None = None


class CustomRateCreate(BaseModel):
    """Schema for adding a custom rate."""

    name: str = Field(min_length=1)
    description: str | None = None
    rate: Decimal = Field(ge=0)
    is_percentage: bool = False
    effective_date: date
    end_date: date | None = None


# ============================================================================
# Work item progress schemas
# ============================================================================


class QuantityUpdate(BaseModel):
    """Schema for setting planned and/or completed quantity."""

    quantity: Decimal | None = Field(default=None, ge=0)
    completed: Decimal | None = Field(default=None, ge=0)


class ProgressRequest(BaseModel):
    """Schema for recording completed units."""

    increment: Decimal = Field(ge=0)


class WorkItemQuantityResponse(BaseModel):
    """Schema for a work item's quantity in a sub-scope."""

    model_config = ConfigDict(from_attributes=True)

    sub_scope_id: UUID
    work_item_id: UUID
    quantity: Decimal
    completed: Decimal
    completion_pct: Decimal


# ============================================================================
# Report schemas
# ============================================================================


class ReportResponse(BaseModel):
    """Schema wrapping a report body."""

    report: str
    data: dict[str, Any]


class TrendsResponse(BaseModel):
    """Schema for company monthly trends."""

    months: int
    items: list[dict[str, Any]]
