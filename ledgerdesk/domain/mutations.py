"""
Mutation engine - the only way a schedule record changes state.

Every operation takes a record and returns a MutationResult holding the next
record. Records are frozen, so the input is never modified. Asking for a
transition that does not apply (pay a closed record, reverse an empty one)
is not an error: the unchanged record comes back with an outcome that says so,
and repeating the call gives the same answer.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from ledgerdesk.domain.exceptions import InvalidIndexError
from ledgerdesk.domain.models import MutationOutcome, MutationResult, ScheduleKind, ScheduleRecord
from ledgerdesk.domain.schedule import is_closed, validate_record
from ledgerdesk.utils.date_utils import DateOnly, parse_date_only


def normalize_notes(notes: Optional[Iterable[Optional[str]]], event_count: int) -> Tuple[str, ...]:
    """One note slot per event: extra slots dropped, missing ones blank"""
    slots = [note or "" for note in (notes or [])][:event_count]
    slots.extend([""] * (event_count - len(slots)))
    return tuple(slots)


def new_schedule(
    kind: ScheduleKind,
    principal: Decimal,
    event_count: int,
    schedule_start: DateOnly,
    frequency_days: int = 7,
    **fields,
) -> ScheduleRecord:
    """Open record with no history and blank notes"""
    parse_date_only(schedule_start)
    record = ScheduleRecord(
        kind=kind,
        principal=principal,
        event_count=event_count,
        schedule_start=schedule_start,
        frequency_days=frequency_days,
        event_notes=normalize_notes(fields.pop("event_notes", None), max(event_count, 0)),
        **fields,
    )
    validate_record(record)
    return record


def event_note(record: ScheduleRecord, index: int) -> str:
    if not 0 <= index < record.event_count:
        raise InvalidIndexError(index, record.event_count)
    notes = normalize_notes(record.event_notes, record.event_count)
    return notes[index]


def record_next_event(
    record: ScheduleRecord,
    as_of: DateOnly,
    note: Optional[str] = None,
    actual_date: Optional[DateOnly] = None,
) -> MutationResult:
    """
    Mark the next event done, optionally writing its note in the same update.

    The note lands in the slot of the event being completed. Writing the note
    and bumping the counter together means a separate "save note" can never
    overwrite the completion with a stale copy of the record, or the reverse.

    Args:
        record: Current record
        as_of: Today, recorded as the actual date unless overridden
        note: Note for the event being completed; None leaves the slot alone
        actual_date: Backdated actual date to record instead of ``as_of``
    """
    if is_closed(record):
        return MutationResult(record, MutationOutcome.ALREADY_COMPLETE)

    done_on = actual_date if actual_date is not None else as_of
    parse_date_only(done_on)

    index = record.completed_count
    notes = record.event_notes
    if note is not None:
        slots = list(normalize_notes(notes, record.event_count))
        slots[index] = note
        notes = tuple(slots)

    updated = replace(
        record,
        completed_count=index + 1,
        actual_dates=record.actual_dates + (done_on,),
        event_notes=notes,
    )
    return MutationResult(updated)


def reverse_last_event(record: ScheduleRecord) -> MutationResult:
    """
    Undo the most recent event.

    The note of the reversed event is kept, so reversal is an exact inverse
    only of a record_next_event that wrote no note.
    """
    validate_record(record)
    if record.completed_count == 0:
        return MutationResult(record, MutationOutcome.ALREADY_EMPTY)

    updated = replace(
        record,
        completed_count=record.completed_count - 1,
        actual_dates=record.actual_dates[:-1],
    )
    return MutationResult(updated)


def force_complete(record: ScheduleRecord, as_of: DateOnly) -> MutationResult:
    """Close the record: every remaining event is recorded on ``as_of``"""
    if is_closed(record):
        return MutationResult(record, MutationOutcome.ALREADY_COMPLETE)
    parse_date_only(as_of)

    missing = record.event_count - record.completed_count
    updated = replace(
        record,
        completed_count=record.event_count,
        actual_dates=record.actual_dates + (as_of,) * missing,
        event_notes=normalize_notes(record.event_notes, record.event_count),
    )
    return MutationResult(updated)


def set_event_note(record: ScheduleRecord, index: int, note: str) -> MutationResult:
    """
    Overwrite the note of one event, done or not.

    Raises:
        InvalidIndexError: index outside [0, event_count)
    """
    validate_record(record)
    if not 0 <= index < record.event_count:
        raise InvalidIndexError(index, record.event_count)

    notes = list(normalize_notes(record.event_notes, record.event_count))
    notes[index] = note
    return MutationResult(replace(record, event_notes=tuple(notes)))
