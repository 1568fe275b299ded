"""Scheme catalogue and NAV history."""
from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from amc_sim.core.errors import NotFoundError
from amc_sim.models import SchemeCategory
from amc_sim.repositories import SchemeRepository
from amc_sim.schemas import NavPointOut, SchemeOut, ok
from amc_sim.web.dependencies import get_db_session

router = APIRouter(prefix="/api/schemes", tags=["schemes"])


@router.get("")
def list_schemes(
    category: SchemeCategory | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_db_session),
) -> dict:
    schemes = SchemeRepository(session)
    if category is not None:
        rows = schemes.list_by_category(category.value)
    else:
        rows = schemes.list_active(limit=limit, offset=offset)
    return ok([SchemeOut.model_validate(row) for row in rows])


@router.get("/{scheme_id}")
def get_scheme(scheme_id: int, session: Session = Depends(get_db_session)) -> dict:
    scheme = SchemeRepository(session).get(scheme_id)
    if scheme is None:
        raise NotFoundError("Scheme", scheme_id)
    return ok(SchemeOut.model_validate(scheme))


@router.get("/{scheme_id}/nav-history")
def get_nav_history(
    scheme_id: int,
    from_date: date | None = None,
    to_date: date | None = None,
    session: Session = Depends(get_db_session),
) -> dict:
    schemes = SchemeRepository(session)
    if schemes.get(scheme_id) is None:
        raise NotFoundError("Scheme", scheme_id)
    to_date = to_date or date.today()
    from_date = from_date or to_date - timedelta(days=30)
    if from_date > to_date:
        raise ValueError("from_date must not be after to_date")
    points = schemes.nav_history(scheme_id, from_date=from_date, to_date=to_date)
    return ok([NavPointOut.model_validate(point) for point in points])
