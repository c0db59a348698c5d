"""GET /v1/overview and /v1/closed - portfolio roll-ups for the dashboard"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledgerdesk.api.dependencies import get_as_of, get_owner_id
from ledgerdesk.api.v1.records import domain_error_to_http, to_schedule_response
from ledgerdesk.api.v1.schemas import ClosedResponse, OverviewResponse, PortfolioSliceSchema
from ledgerdesk.domain.aggregation import (
    closed_records,
    due_this_week,
    open_records,
    portfolio_breakdown,
    upcoming,
    weekly_summary,
)
from ledgerdesk.domain.exceptions import DomainException
from ledgerdesk.infrastructure.database.repositories import LoanRepository, ReserveRepository
from ledgerdesk.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/overview", response_model=OverviewResponse)
def get_overview(
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """
    Week-at-a-glance figures for one owner.

    Returns:
        Outstanding balance, loans and reserves due this week, the next
        upcoming loans and the outstanding portfolio split by client
    """
    loans = LoanRepository(db).list_for_owner(owner_id)
    reserves = ReserveRepository(db).list_for_owner(owner_id)

    try:
        summary = weekly_summary(loans, reserves, as_of)
        active = open_records(loans)
        return OverviewResponse(
            **vars(summary),
            loans_due=[to_schedule_response(r, as_of) for r in due_this_week(active, as_of)],
            reserves_due=[to_schedule_response(r, as_of) for r in due_this_week(reserves, as_of)],
            upcoming=[to_schedule_response(r, as_of) for r in upcoming(active, as_of)],
            portfolio=[
                PortfolioSliceSchema(
                    record_id=s.record_id,
                    client=s.client,
                    remaining=s.remaining,
                    color=s.color,
                )
                for s in portfolio_breakdown(loans)
            ],
        )
    except DomainException as e:
        logging.warning(f"Cannot build overview: {e}")
        raise domain_error_to_http(e)


@router.get("/closed", response_model=ClosedResponse)
def get_closed(
    owner_id: str = Depends(get_owner_id),
    as_of: str = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """Fully repaid loans and fully deducted reserves"""
    loans = LoanRepository(db).list_for_owner(owner_id)
    reserves = ReserveRepository(db).list_for_owner(owner_id)

    try:
        return ClosedResponse(
            loans=[to_schedule_response(r, as_of) for r in closed_records(loans)],
            reserves=[to_schedule_response(r, as_of) for r in closed_records(reserves)],
        )
    except DomainException as e:
        raise domain_error_to_http(e)
