"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class ScheduleKind(str, Enum):
    """Which engine a record belongs to"""

    LOAN = "loan"
    RESERVE = "reserve"


class DueRule(str, Enum):
    """How "due this week" treats a next-due date that already passed"""

    WEEK_ONLY = "week_only"  # loans
    WEEK_OR_OVERDUE = "week_or_overdue"  # reserves


class MutationOutcome(str, Enum):
    APPLIED = "applied"
    ALREADY_COMPLETE = "already_complete"
    ALREADY_EMPTY = "already_empty"


@dataclass(frozen=True)
class ScheduleRecord:
    """
    Installment loan or reserve deduction schedule.

    ``completed_count`` is the authoritative counter and always equals
    ``len(actual_dates)``. ``event_notes`` has one slot per event once
    normalised. Fields after ``hidden`` are carried for the store and the
    caller; the engine never reads them.
    """

    kind: ScheduleKind
    principal: Decimal
    event_count: int
    schedule_start: str
    frequency_days: int = 7
    completed_count: int = 0
    actual_dates: Tuple[str, ...] = ()
    event_notes: Tuple[str, ...] = ()
    provider_fee: Decimal = Decimal("0")
    installment: Optional[Decimal] = None  # stored per-event amount (loans)
    hidden: bool = False

    id: Optional[int] = None
    owner_id: Optional[str] = None
    client: str = ""
    ref: str = ""
    note: str = ""
    provider_type: str = ""
    provider_name: str = ""

    @property
    def is_loan(self) -> bool:
        return self.kind is ScheduleKind.LOAN


@dataclass(frozen=True)
class MutationResult:
    """Record produced by a mutation, and whether anything changed"""

    record: ScheduleRecord
    outcome: MutationOutcome = MutationOutcome.APPLIED

    @property
    def changed(self) -> bool:
        return self.outcome is MutationOutcome.APPLIED


@dataclass(frozen=True)
class PortfolioSlice:
    """One record's share of the outstanding portfolio"""

    record_id: Optional[int]
    client: str
    remaining: Decimal
    color: str


@dataclass(frozen=True)
class WeeklySummary:
    """Headline numbers for the week containing ``as_of``"""

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
