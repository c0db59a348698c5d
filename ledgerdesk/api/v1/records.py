"""/v1/{collection} - loan and reserve records and their state transitions"""

import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ledgerdesk.api.dependencies import get_as_of, get_notifier, get_owner_id, get_request_id
from ledgerdesk.api.v1.schemas import (
    Collection,
    CreateScheduleRequest,
    MutationResponse,
    NoteRequest,
    RecordEventRequest,
    ScheduleResponse,
)
from ledgerdesk.config import settings
from ledgerdesk.domain.exceptions import (
    DomainException,
    MalformedRecordError,
    RecordNotFoundError,
)
from ledgerdesk.domain.models import MutationResult, ScheduleKind, ScheduleRecord
from ledgerdesk.domain.mutations import (
    force_complete,
    new_schedule,
    record_next_event,
    reverse_last_event,
    set_event_note,
)
from ledgerdesk.domain.schedule import (
    base_per_event,
    effective_principal,
    event_amount,
    fee_per_event,
    is_closed,
    is_due_now,
    is_due_this_week,
    is_overdue,
    next_due_date,
    overdue_count,
    planned_dates,
    provider_display,
    remaining_balance,
)
from ledgerdesk.infrastructure.clients.notifier import ChangeNotifier
from ledgerdesk.infrastructure.database.repositories import get_repository
from ledgerdesk.infrastructure.database.session import get_db
from ledgerdesk.infrastructure.observability.logging import log_mutation
from ledgerdesk.infrastructure.observability.metrics import record_mutation

router = APIRouter()


def to_schedule_response(record: ScheduleRecord, as_of: str) -> ScheduleResponse:
    """Stored fields plus everything the calculator derives as of ``as_of``"""
    return ScheduleResponse(
        id=record.id,
        kind=record.kind,
        client=record.client,
        ref=record.ref,
        note=record.note,
        principal=record.principal,
        effective_principal=effective_principal(record),
        provider_fee=record.provider_fee,
        provider_type=record.provider_type,
        provider_name=record.provider_name,
        provider_display=provider_display(record) if record.kind is ScheduleKind.LOAN else None,
        hidden=record.hidden,
        event_count=record.event_count,
        completed_count=record.completed_count,
        schedule_start=record.schedule_start,
        frequency_days=record.frequency_days,
        planned_dates=planned_dates(record),
        actual_dates=list(record.actual_dates),
        event_notes=list(record.event_notes),
        event_amount=event_amount(record),
        base_per_event=base_per_event(record),
        fee_per_event=fee_per_event(record),
        remaining_balance=remaining_balance(record),
        next_due_date=next_due_date(record),
        overdue_count=overdue_count(record, as_of),
        overdue=is_overdue(record, as_of),
        due_this_week=is_due_this_week(record, as_of),
        due_now=is_due_now(record, as_of) if record.kind is ScheduleKind.RESERVE else None,
        closed=is_closed(record),
    )


def domain_error_to_http(e: DomainException) -> HTTPException:
    """Map domain failures onto HTTP status codes"""
    if isinstance(e, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, MalformedRecordError):
        return HTTPException(status_code=409, detail=f"Stored record is inconsistent: {e}")
    return HTTPException(status_code=400, detail=str(e))


@router.get("/{collection}", response_model=List[ScheduleResponse])
def list_records(
    collection: Collection,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """List the owner's records, oldest first, with derived state"""
    records = get_repository(collection.kind, db).list_for_owner(owner_id)
    try:
        return [to_schedule_response(r, as_of) for r in records]
    except DomainException as e:
        logging.warning(f"Cannot compute {collection.value} state: {e}")
        raise domain_error_to_http(e)


@router.post("/{collection}", response_model=ScheduleResponse, status_code=201)
def create_record(
    collection: Collection,
    body: CreateScheduleRequest,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """Create an open schedule with no recorded events"""
    loan_fields = {}
    if collection.kind is ScheduleKind.LOAN:
        loan_fields = dict(
            installment=body.installment,
            provider_fee=body.provider_fee,
            provider_type=body.provider_type,
            provider_name=body.provider_name,
            ref=body.ref,
            hidden=body.hidden,
        )

    try:
        record = new_schedule(
            collection.kind,
            principal=body.principal,
            event_count=body.event_count,
            schedule_start=body.schedule_start,
            frequency_days=body.frequency_days or settings.default_frequency_days,
            client=body.client,
            note=body.note,
            **loan_fields,
        )
        created = get_repository(collection.kind, db).create(record, owner_id)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise domain_error_to_http(e)

    background_tasks.add_task(notifier.publish, collection.value, created.id, "create", owner_id)
    return to_schedule_response(created, as_of)


@router.get("/{collection}/{record_id}", response_model=ScheduleResponse)
def get_record(
    collection: Collection,
    record_id: int,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    try:
        record = get_repository(collection.kind, db).get(record_id, owner_id)
        return to_schedule_response(record, as_of)
    except DomainException as e:
        raise domain_error_to_http(e)


@router.delete("/{collection}/{record_id}", status_code=204)
def delete_record(
    collection: Collection,
    record_id: int,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    try:
        get_repository(collection.kind, db).delete(record_id, owner_id)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise domain_error_to_http(e)

    background_tasks.add_task(notifier.publish, collection.value, record_id, "delete", owner_id)


def apply_mutation(
    collection: Collection,
    record_id: int,
    operation: str,
    mutate: Callable[[ScheduleRecord], MutationResult],
    *,
    request: Request,
    background_tasks: BackgroundTasks,
    owner_id: str,
    as_of: str,
    db: Session,
    notifier: ChangeNotifier,
) -> MutationResponse:
    """
    Read the record, compute its next state, write it back.

    No-op outcomes skip the write and the change notification but are still
    counted and logged.
    """
    request_id = get_request_id(request)
    repo = get_repository(collection.kind, db)

    try:
        record = repo.get(record_id, owner_id)
        was_closed = is_closed(record)
        result = mutate(record)
        if result.changed:
            record = repo.replace(result.record)
        db.commit()
        now_closed = is_closed(record)
        response = to_schedule_response(record, as_of)
    except DomainException as e:
        db.rollback()
        logging.warning(f"{operation} rejected: {e}", extra={"request_id": request_id})
        raise domain_error_to_http(e)

    record_mutation(collection.value, operation, result.outcome.value, just_closed=now_closed and not was_closed)
    log_mutation(
        request_id,
        collection.value,
        record_id,
        operation,
        result.outcome.value,
        record.completed_count,
        record.event_count,
    )

    if result.changed:
        background_tasks.add_task(notifier.publish, collection.value, record_id, operation, owner_id)

    return MutationResponse(outcome=result.outcome, record=response)


@router.post("/{collection}/{record_id}/events", response_model=MutationResponse)
def record_event(
    collection: Collection,
    record_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    body: Optional[RecordEventRequest] = None,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """Mark the next installment paid / deduction taken, with an optional note"""
    body = body or RecordEventRequest()
    return apply_mutation(
        collection,
        record_id,
        "record_event",
        lambda r: record_next_event(r, as_of, note=body.note, actual_date=body.actual_date),
        request=request,
        background_tasks=background_tasks,
        owner_id=owner_id,
        as_of=as_of,
        db=db,
        notifier=notifier,
    )


@router.post("/{collection}/{record_id}/reverse", response_model=MutationResponse)
def reverse_event(
    collection: Collection,
    record_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """Undo the most recent event"""
    return apply_mutation(
        collection,
        record_id,
        "reverse",
        reverse_last_event,
        request=request,
        background_tasks=background_tasks,
        owner_id=owner_id,
        as_of=as_of,
        db=db,
        notifier=notifier,
    )


@router.post("/{collection}/{record_id}/close", response_model=MutationResponse)
def close_record(
    collection: Collection,
    record_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """Record every remaining event as of today"""
    return apply_mutation(
        collection,
        record_id,
        "close",
        lambda r: force_complete(r, as_of),
        request=request,
        background_tasks=background_tasks,
        owner_id=owner_id,
        as_of=as_of,
        db=db,
        notifier=notifier,
    )


@router.put("/{collection}/{record_id}/notes/{index}", response_model=MutationResponse)
def put_note(
    collection: Collection,
    record_id: int,
    index: int,
    body: NoteRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
):
    """Overwrite the note of one event"""
    return apply_mutation(
        collection,
        record_id,
        "set_note",
        lambda r: set_event_note(r, index, body.note),
        request=request,
        background_tasks=background_tasks,
        owner_id=owner_id,
        as_of=as_of,
        db=db,
        notifier=notifier,
    )
