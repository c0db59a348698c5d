"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ledgerdesk.domain.models import MutationOutcome, ScheduleKind

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class Collection(str, Enum):
    """URL segment naming a record collection"""

    LOANS = "loans"
    RESERVES = "reserves"

    @property
    def kind(self) -> ScheduleKind:
        return ScheduleKind.LOAN if self is Collection.LOANS else ScheduleKind.RESERVE


class CreateScheduleRequest(BaseModel):
    """Request body for POST /v1/{collection}"""

    client: str = Field(..., min_length=1, description="Client name")
    principal: Decimal = Field(..., gt=0, description="Loan total or reserve amount")
    event_count: int = Field(..., ge=1, description="Number of installments or deductions")
    schedule_start: str = Field(..., pattern=DATE_PATTERN, description="Nominal date of the first event")
    frequency_days: Optional[int] = Field(None, ge=1, description="Days between events")
    installment: Optional[Decimal] = Field(None, gt=0, description="Stored per-installment amount (loans)")
    provider_fee: Decimal = Field(Decimal("0"), ge=0, description="Factoring fee (loans)")
    provider_type: str = ""
    provider_name: str = ""
    ref: str = ""
    note: str = ""
    hidden: bool = False


class RecordEventRequest(BaseModel):
    """Request body for POST /v1/{collection}/{id}/events"""

    note: Optional[str] = None
    actual_date: Optional[str] = Field(None, pattern=DATE_PATTERN, description="Backdated event date")


class NoteRequest(BaseModel):
    """Request body for PUT /v1/{collection}/{id}/notes/{index}"""

    note: str


class ScheduleResponse(BaseModel):
    """Stored record plus its derived schedule state"""

    id: int
    kind: ScheduleKind
    client: str
    ref: str = ""
    note: str = ""
    principal: Decimal
    effective_principal: Decimal
    provider_fee: Decimal
    provider_type: str = ""
    provider_name: str = ""
    provider_display: Optional[str] = None
    hidden: bool = False
    event_count: int
    completed_count: int
    schedule_start: str
    frequency_days: int
    planned_dates: List[str]
    actual_dates: List[str]
    event_notes: List[str]
    event_amount: Decimal
    base_per_event: Decimal
    fee_per_event: Decimal
    remaining_balance: Decimal
    next_due_date: Optional[str] = None
    overdue_count: int
    overdue: bool
    due_this_week: bool
    due_now: Optional[bool] = None
    closed: bool


class MutationResponse(BaseModel):
    """Response for the event, reverse, close and note endpoints"""

    outcome: MutationOutcome
    record: ScheduleResponse


class PortfolioSliceSchema(BaseModel):
    record_id: int
    client: str
    remaining: Decimal
    color: str


class OverviewResponse(BaseModel):
    """Response for GET /v1/overview"""

    as_of: str
    week_start: str
    week_end: str
    week_label: str
    total_outstanding: Decimal
    active_loans: int
    loans_due_amount: Decimal
    loans_due_count: int
    reserves_due_amount: Decimal
    reserves_due_count: int
    closed_loans: int
    loans_due: List[ScheduleResponse]
    reserves_due: List[ScheduleResponse]
    upcoming: List[ScheduleResponse]
    portfolio: List[PortfolioSliceSchema]


class ClosedResponse(BaseModel):
    """Response for GET /v1/closed"""

    loans: List[ScheduleResponse]
    reserves: List[ScheduleResponse]
