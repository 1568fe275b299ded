"""Folio detail, closure and activity."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from amc_sim.core.errors import NotFoundError
from amc_sim.repositories import FolioRepository, HoldingRepository, SipRepository, TransactionRepository
from amc_sim.schemas import (
    FolioDetail,
    FolioOut,
    FolioSummaryOut,
    HoldingOut,
    SipOut,
    TransactionOut,
    ok,
)
from amc_sim.web.dependencies import get_db_session

router = APIRouter(prefix="/api/folios", tags=["folios"])


def _require_folio(folios: FolioRepository, folio_id: int):
    folio = folios.get(folio_id)
    if folio is None:
        raise NotFoundError("Folio", folio_id)
    return folio


@router.get("/{folio_id}")
def get_folio(folio_id: int, session: Session = Depends(get_db_session)) -> dict:
    folios = FolioRepository(session)
    folio = _require_folio(folios, folio_id)
    detail = FolioDetail(
        folio=FolioOut.model_validate(folio),
        holdings=[HoldingOut.model_validate(h) for h in HoldingRepository(session).list_for_folio(folio_id)],
        summary=FolioSummaryOut.model_validate(folios.summary(folio)),
    )
    return ok(detail)


@router.post("/{folio_id}/close")
def close_folio(folio_id: int, session: Session = Depends(get_db_session)) -> dict:
    folio = FolioRepository(session).close(folio_id)
    if folio is None:
        raise NotFoundError("Folio", folio_id)
    session.commit()
    return ok(FolioOut.model_validate(folio))


@router.get("/{folio_id}/transactions")
def list_folio_transactions(
    folio_id: int,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_db_session),
) -> dict:
    _require_folio(FolioRepository(session), folio_id)
    rows = TransactionRepository(session).list_for_folio(folio_id, limit=limit, offset=offset)
    return ok([TransactionOut.model_validate(row) for row in rows])


@router.get("/{folio_id}/sips")
def list_folio_sips(folio_id: int, session: Session = Depends(get_db_session)) -> dict:
    _require_folio(FolioRepository(session), folio_id)
    return ok([SipOut.model_validate(sip) for sip in SipRepository(session).list_for_folio(folio_id)])
