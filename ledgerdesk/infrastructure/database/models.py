"""SQLAlchemy ORM models for the loans and reserves tables"""

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class LoanRow(Base):
    """Installment loan schedule"""

    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Text, nullable=True, index=True)
    client = Column(Text, nullable=False)
    ref = Column(Text, nullable=True)
    total = Column(Numeric(14, 2), nullable=False)
    installment = Column(Numeric(14, 2), nullable=True)
    paid_count = Column(Integer, nullable=False, default=0)
    total_installments = Column(Integer, nullable=False)
    start_date = Column(Text, nullable=False)
    freq_days = Column(Integer, nullable=False, default=7)
    payment_dates = Column(JSON, nullable=False, default=list)
    payment_notes = Column(JSON, nullable=False, default=list)
    note = Column(Text, nullable=True)
    provider_type = Column(Text, nullable=True)
    provider_name = Column(Text, nullable=True)
    factoring_fee = Column(Numeric(14, 2), nullable=False, default=0)
    hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ReserveRow(Base):
    """Periodic reserve deduction schedule"""

    __tablename__ = "reserves"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Text, nullable=True, index=True)
    client = Column(Text, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    installments = Column(Integer, nullable=False, default=1)
    date = Column(Text, nullable=False)
    freq_days = Column(Integer, nullable=False, default=7)
    note = Column(Text, nullable=True)
    paid_count = Column(Integer, nullable=False, default=0)
    deduction_dates = Column(JSON, nullable=False, default=list)
    deduction_notes = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
