"""Portfolio and weekly roll-ups over collections of schedule records"""

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from ledgerdesk.domain.models import PortfolioSlice, ScheduleRecord, WeeklySummary
from ledgerdesk.domain.schedule import (
    event_amount,
    is_closed,
    is_due_this_week,
    next_due_date,
    remaining_balance,
    round_cents,
)
from ledgerdesk.utils.date_utils import DateOnly, parse_date_only, week_bounds

CHART_COLORS = ("#4f8ef7", "#7c5cfc", "#2ecc8f", "#f75f5f", "#f7c34f", "#f77f4f", "#4fc3f7")

MISSING_DATE = "—"

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_money(amount: Decimal) -> str:
    """$1,234.50 style, always two decimals"""
    amount = round_cents(Decimal(amount))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_day_month(value: Optional[DateOnly]) -> str:
    """05 Mar style label for a date-only string"""
    if not value:
        return MISSING_DATE
    day = parse_date_only(value)
    return f"{day.day:02d} {MONTH_ABBREVIATIONS[day.month - 1]}"


def week_range_label(as_of: DateOnly) -> str:
    start, end = week_bounds(as_of)
    return f"{format_day_month(start)} – {format_day_month(end)}"


def open_records(records: Iterable[ScheduleRecord]) -> List[ScheduleRecord]:
    return [r for r in records if not is_closed(r)]


def closed_records(records: Iterable[ScheduleRecord]) -> List[ScheduleRecord]:
    return [r for r in records if is_closed(r)]


def due_this_week(records: Iterable[ScheduleRecord], as_of: DateOnly) -> List[ScheduleRecord]:
    return [r for r in records if is_due_this_week(r, as_of)]


def due_this_week_total(records: Iterable[ScheduleRecord], as_of: DateOnly) -> Decimal:
    """Sum of one event's amount for every record due this week"""
    total = sum((event_amount(r) for r in due_this_week(records, as_of)), Decimal("0"))
    return round_cents(total)


def outstanding_total(records: Iterable[ScheduleRecord]) -> Decimal:
    """Remaining balance summed over open records"""
    return sum((remaining_balance(r) for r in open_records(records)), Decimal("0.00"))


def portfolio_breakdown(records: Sequence[ScheduleRecord]) -> List[PortfolioSlice]:
    """
    Remaining balance per open record, each with a palette colour.

    Colours are assigned by position and wrap around the palette, so the same
    ordering always yields the same colours.
    """
    return [
        PortfolioSlice(
            record_id=r.id,
            client=r.client,
            remaining=remaining_balance(r),
            color=CHART_COLORS[position % len(CHART_COLORS)],
        )
        for position, r in enumerate(open_records(records))
    ]


def upcoming(records: Iterable[ScheduleRecord], as_of: DateOnly, limit: int = 6) -> List[ScheduleRecord]:
    """Open records not due this week, soonest next due date first"""
    later = [r for r in open_records(records) if not is_due_this_week(r, as_of)]
    later.sort(key=next_due_date)
    return later[:limit]


def weekly_summary(
    loans: Sequence[ScheduleRecord],
    reserves: Sequence[ScheduleRecord],
    as_of: DateOnly,
) -> WeeklySummary:
    """Headline figures for the overview: outstanding, due this week, closed"""
    start, end = week_bounds(as_of)
    active = open_records(loans)
    loans_due = due_this_week(active, as_of)
    reserves_due = due_this_week(reserves, as_of)

    return WeeklySummary(
        as_of=as_of,
        week_start=start,
        week_end=end,
        week_label=week_range_label(as_of),
        total_outstanding=outstanding_total(active),
        active_loans=len(active),
        loans_due_amount=due_this_week_total(loans_due, as_of),
        loans_due_count=len(loans_due),
        reserves_due_amount=due_this_week_total(reserves_due, as_of),
        reserves_due_count=len(reserves_due),
        closed_loans=len(loans) - len(active),
    )
