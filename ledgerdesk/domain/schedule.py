"""Schedule state calculator - due dates, overdue counts and balances"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from ledgerdesk.domain.exceptions import InvalidIndexError, MalformedRecordError
from ledgerdesk.domain.models import DueRule, ScheduleKind, ScheduleRecord
from ledgerdesk.utils.date_utils import (
    DateOnly,
    add_days,
    days_between,
    is_same_day,
    is_within_range,
    week_bounds,
)

CENT = Decimal("0.01")

DEFAULT_PROVIDER = "TruFunding"
OTHER_PROVIDER = "Other"


def round_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_record(record: ScheduleRecord) -> None:
    """
    Refuse records whose stored state contradicts itself.

    Raises:
        MalformedRecordError: bad counts, bad frequency, or a date history
            whose length differs from completed_count
    """
    if record.event_count <= 0:
        raise MalformedRecordError(f"event_count must be >= 1, got {record.event_count}")
    if record.frequency_days <= 0:
        raise MalformedRecordError(f"frequency_days must be >= 1, got {record.frequency_days}")
    if not 0 <= record.completed_count <= record.event_count:
        raise MalformedRecordError(
            f"completed_count {record.completed_count} outside [0, {record.event_count}]"
        )
    if len(record.actual_dates) != record.completed_count:
        raise MalformedRecordError(
            f"{len(record.actual_dates)} actual dates for completed_count {record.completed_count}"
        )


def is_closed(record: ScheduleRecord) -> bool:
    validate_record(record)
    return record.completed_count >= record.event_count


def default_due_rule(kind: ScheduleKind) -> DueRule:
    return DueRule.WEEK_ONLY if kind is ScheduleKind.LOAN else DueRule.WEEK_OR_OVERDUE


def effective_principal(record: ScheduleRecord) -> Decimal:
    """Principal plus provider fee (reserves carry no fee)"""
    if record.kind is ScheduleKind.RESERVE:
        return record.principal
    return record.principal + record.provider_fee


def event_amount(record: ScheduleRecord) -> Decimal:
    """
    Amount collected per event.

    Loans use the stored installment when one was entered, otherwise the
    effective principal split evenly. Reserves always split the amount evenly.
    """
    validate_record(record)
    if record.kind is ScheduleKind.LOAN and record.installment is not None:
        return record.installment
    return effective_principal(record) / record.event_count


def base_per_event(record: ScheduleRecord) -> Decimal:
    """Per-event share of the principal, before any fee"""
    validate_record(record)
    return record.principal / record.event_count


def fee_per_event(record: ScheduleRecord) -> Decimal:
    validate_record(record)
    if record.kind is ScheduleKind.RESERVE:
        return Decimal("0")
    return record.provider_fee / record.event_count


def remaining_balance(record: ScheduleRecord) -> Decimal:
    """max(0, effective principal - completed events * event amount), in cents"""
    recovered = record.completed_count * event_amount(record)
    return round_cents(max(Decimal("0"), effective_principal(record) - recovered))


def last_actual_date(record: ScheduleRecord) -> Optional[DateOnly]:
    return record.actual_dates[-1] if record.actual_dates else None


def nominal_due_date(record: ScheduleRecord, index: int) -> DateOnly:
    """Planned date of event ``index`` on the original schedule"""
    validate_record(record)
    if not 0 <= index < record.event_count:
        raise InvalidIndexError(index, record.event_count)
    return add_days(record.schedule_start, index * record.frequency_days)


def next_due_date(record: ScheduleRecord) -> Optional[DateOnly]:
    """
    Date the next event is asked for, or None once every event is done.

    After the first actual event the schedule rebases off the latest actual
    date, so a late event does not make every later event late as well.
    """
    if is_closed(record):
        return None
    last = last_actual_date(record)
    if last is not None:
        return add_days(last, record.frequency_days)
    return add_days(record.schedule_start, record.completed_count * record.frequency_days)


def is_due_this_week(
    record: ScheduleRecord,
    as_of: DateOnly,
    rule: Optional[DueRule] = None,
) -> bool:
    """
    Whether the record should be collected during the week containing ``as_of``.

    WEEK_ONLY (loans): next due falls inside Monday-Sunday.
    WEEK_OR_OVERDUE (reserves): next due is on or before Sunday, unless an
    event was already recorded on ``as_of`` itself.
    """
    due = next_due_date(record)
    if due is None:
        return False

    start, end = week_bounds(as_of)
    rule = rule or default_due_rule(record.kind)

    if rule is DueRule.WEEK_OR_OVERDUE:
        if is_same_day(last_actual_date(record), as_of):
            return False
        return due <= end

    return is_within_range(due, start, end)


def is_due_now(record: ScheduleRecord, as_of: DateOnly) -> bool:
    """Open, next due on or before ``as_of``, and nothing recorded today"""
    due = next_due_date(record)
    if due is None:
        return False
    if is_same_day(last_actual_date(record), as_of):
        return False
    return due <= as_of


def overdue_count(record: ScheduleRecord, as_of: DateOnly) -> int:
    """
    Events whose nominal date is on or before ``as_of`` and still not done.

    Counted against schedule_start + k * frequency_days with no rebasing, so
    one late payment that was caught up does not hide how far behind the
    plan the record is.
    """
    if is_closed(record):
        return 0

    elapsed = days_between(record.schedule_start, as_of)
    if elapsed < 0:
        return 0

    due_by_now = min(elapsed // record.frequency_days + 1, record.event_count)
    remaining = record.event_count - record.completed_count
    return max(0, min(due_by_now - record.completed_count, remaining))


def is_overdue(record: ScheduleRecord, as_of: DateOnly) -> bool:
    return overdue_count(record, as_of) > 0


def planned_dates(record: ScheduleRecord) -> List[DateOnly]:
    """Nominal date of every event, first to last"""
    validate_record(record)
    return [nominal_due_date(record, index) for index in range(record.event_count)]


def provider_display(record: ScheduleRecord) -> str:
    """Funding provider label: the custom name for "Other", else the default provider"""
    name = record.provider_name.strip()
    if record.provider_type == OTHER_PROVIDER and name:
        return name
    return DEFAULT_PROVIDER
