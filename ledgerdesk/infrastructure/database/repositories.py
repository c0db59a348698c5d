"""Data access layer for schedule records"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Type, Union

from sqlalchemy.orm import Session

from ledgerdesk.domain.exceptions import RecordNotFoundError
from ledgerdesk.domain.models import ScheduleKind, ScheduleRecord
from ledgerdesk.domain.mutations import normalize_notes
from ledgerdesk.infrastructure.database.models import LoanRow, ReserveRow

Row = Union[LoanRow, ReserveRow]


def _money(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class ScheduleRepository:
    """
    Create/read/replace/delete for one kind of schedule, partitioned by owner.

    Writes replace the whole row with the record computed by the caller; there
    is no compare-and-swap, so concurrent writers of one record are last
    writer wins.
    """

    model: Type[Row]

    def __init__(self, db: Session):
        self.db = db

    def to_record(self, row: Row) -> ScheduleRecord:
        raise NotImplementedError

    def to_values(self, record: ScheduleRecord) -> Dict[str, Any]:
        raise NotImplementedError

    def list_for_owner(self, owner_id: Optional[str]) -> List[ScheduleRecord]:
        """All records for the owner, oldest first"""
        rows = (
            self.db.query(self.model)
            .filter(self.model.owner_id == owner_id)
            .order_by(self.model.id.asc())
            .all()
        )
        return [self.to_record(row) for row in rows]

    def _get_row(self, record_id: int, owner_id: Optional[str]) -> Row:
        row = (
            self.db.query(self.model)
            .filter(self.model.id == record_id, self.model.owner_id == owner_id)
            .first()
        )
        if row is None:
            raise RecordNotFoundError(f"{self.model.__tablename__} record {record_id} not found")
        return row

    def get(self, record_id: int, owner_id: Optional[str]) -> ScheduleRecord:
        return self.to_record(self._get_row(record_id, owner_id))

    def create(self, record: ScheduleRecord, owner_id: Optional[str]) -> ScheduleRecord:
        """Insert a new record and return it with its id"""
        row = self.model(owner_id=owner_id, **self.to_values(record))
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return self.to_record(row)

    def replace(self, record: ScheduleRecord) -> ScheduleRecord:
        """Overwrite the stored row with ``record``"""
        row = self._get_row(record.id, record.owner_id)
        for column, value in self.to_values(record).items():
            setattr(row, column, value)
        self.db.flush()
        return self.to_record(row)

    def delete(self, record_id: int, owner_id: Optional[str]) -> None:
        self.db.delete(self._get_row(record_id, owner_id))
        self.db.flush()


class LoanRepository(ScheduleRepository):
    """Repository for installment loans"""

    model = LoanRow

    def to_record(self, row: LoanRow) -> ScheduleRecord:
        count = row.total_installments or 0
        return ScheduleRecord(
            kind=ScheduleKind.LOAN,
            id=row.id,
            owner_id=row.owner_id,
            client=row.client,
            ref=row.ref or "",
            principal=_money(row.total),
            installment=_money(row.installment) if row.installment is not None else None,
            completed_count=row.paid_count or 0,
            event_count=count,
            schedule_start=row.start_date,
            frequency_days=7 if row.freq_days is None else row.freq_days,
            actual_dates=tuple(row.payment_dates or ()),
            event_notes=normalize_notes(row.payment_notes, max(count, 0)),
            note=row.note or "",
            provider_type=row.provider_type or "",
            provider_name=row.provider_name or "",
            provider_fee=_money(row.factoring_fee),
            hidden=bool(row.hidden),
        )

    def to_values(self, record: ScheduleRecord) -> Dict[str, Any]:
        return {
            "client": record.client,
            "ref": record.ref or None,
            "total": record.principal,
            "installment": record.installment,
            "paid_count": record.completed_count,
            "total_installments": record.event_count,
            "start_date": record.schedule_start,
            "freq_days": record.frequency_days,
            "payment_dates": list(record.actual_dates),
            "payment_notes": list(normalize_notes(record.event_notes, record.event_count)),
            "note": record.note or None,
            "provider_type": record.provider_type or None,
            "provider_name": record.provider_name or None,
            "factoring_fee": record.provider_fee,
            "hidden": record.hidden,
        }


class ReserveRepository(ScheduleRepository):
    """Repository for reserve deductions"""

    model = ReserveRow

    def to_record(self, row: ReserveRow) -> ScheduleRecord:
        count = row.installments or 0
        return ScheduleRecord(
            kind=ScheduleKind.RESERVE,
            id=row.id,
            owner_id=row.owner_id,
            client=row.client,
            principal=_money(row.amount),
            completed_count=row.paid_count or 0,
            event_count=count,
            schedule_start=row.date,
            frequency_days=7 if row.freq_days is None else row.freq_days,
            actual_dates=tuple(row.deduction_dates or ()),
            event_notes=normalize_notes(row.deduction_notes, max(count, 0)),
            note=row.note or "",
        )

    def to_values(self, record: ScheduleRecord) -> Dict[str, Any]:
        return {
            "client": record.client,
            "amount": record.principal,
            "installments": record.event_count,
            "date": record.schedule_start,
            "freq_days": record.frequency_days,
            "note": record.note or None,
            "paid_count": record.completed_count,
            "deduction_dates": list(record.actual_dates),
            "deduction_notes": list(normalize_notes(record.event_notes, record.event_count)),
        }


def get_repository(kind: ScheduleKind, db: Session) -> ScheduleRepository:
    if kind is ScheduleKind.LOAN:
        return LoanRepository(db)
    return ReserveRepository(db)
