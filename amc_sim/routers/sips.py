"""SIP registration lookups and state changes."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from amc_sim.core.errors import NotFoundError
from amc_sim.repositories import SipRepository
from amc_sim.schemas import SipOut, SipUpdateRequest, ok
from amc_sim.web.dependencies import get_db_session

router = APIRouter(prefix="/api/sips", tags=["sips"])


def _present(sip) -> dict:
    return ok(
        {
            **SipOut.model_validate(sip).model_dump(mode="json"),
            "remaining_executions": sip.remaining_executions(),
            "total_invested": format(sip.total_invested(), "f"),
        }
    )


@router.get("/{sip_id}")
def get_sip(sip_id: int, session: Session = Depends(get_db_session)) -> dict:
    sip = SipRepository(session).get(sip_id)
    if sip is None:
        raise NotFoundError("SIP", sip_id)
    return _present(sip)


@router.post("/{sip_id}/pause")
def pause_sip(sip_id: int, session: Session = Depends(get_db_session)) -> dict:
    sip = SipRepository(session).pause(sip_id)
    session.commit()
    return _present(sip)


@router.post("/{sip_id}/resume")
def resume_sip(sip_id: int, session: Session = Depends(get_db_session)) -> dict:
    sip = SipRepository(session).resume(sip_id)
    session.commit()
    return _present(sip)


@router.post("/{sip_id}/cancel")
def cancel_sip(sip_id: int, session: Session = Depends(get_db_session)) -> dict:
    sip = SipRepository(session).cancel(sip_id)
    session.commit()
    return _present(sip)


@router.patch("/{sip_id}")
def update_sip(sip_id: int, payload: SipUpdateRequest, session: Session = Depends(get_db_session)) -> dict:
    sip = SipRepository(session).update(sip_id, payload.to_update())
    session.commit()
    return _present(sip)
