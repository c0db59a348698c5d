"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Header, HTTPException, Query, Request

from ledgerdesk.domain.exceptions import InvalidDateError
from ledgerdesk.infrastructure.clients.notifier import ChangeNotifier
from ledgerdesk.utils.date_utils import today_date_only


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_owner_id: str = Header(..., min_length=1, description="Opaque owner/tenant id")) -> str:
    """Owner partition the request operates on"""
    return x_owner_id


def get_as_of(as_of: Optional[str] = Query(None, description="Override today (YYYY-MM-DD)")) -> str:
    """Clock for the request: the as_of parameter, else today's local date"""
    try:
        return today_date_only(as_of)
    except InvalidDateError as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_notifier() -> ChangeNotifier:
    """Provide change notification client instance"""
    return ChangeNotifier()
