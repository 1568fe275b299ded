"""Customer records and their folios."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from amc_sim.core.errors import DuplicateResourceError, NotFoundError
from amc_sim.core.log import get_logger
from amc_sim.domain.drafts import CustomerDraft
from amc_sim.repositories import CustomerRepository, FolioRepository
from amc_sim.schemas import CustomerCreate, CustomerOut, CustomerUpdateRequest, FolioOut, ok
from amc_sim.web.dependencies import get_db_session

router = APIRouter(prefix="/api/customers", tags=["customers"])
LOGGER = get_logger(__name__)


@router.get("")
def list_customers(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_db_session),
) -> dict:
    customers = CustomerRepository(session)
    rows = customers.list_recent(limit=limit, offset=offset)
    return ok(
        {
            "items": [CustomerOut.model_validate(row) for row in rows],
            "total": customers.count(),
            "limit": limit,
            "offset": offset,
        }
    )


@router.get("/{customer_id}")
def get_customer(customer_id: int, session: Session = Depends(get_db_session)) -> dict:
    customer = CustomerRepository(session).get(customer_id)
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    return ok(CustomerOut.model_validate(customer))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(payload: CustomerCreate, session: Session = Depends(get_db_session)) -> dict:
    customers = CustomerRepository(session)
    if customers.find_by_pan(payload.pan_number) is not None:
        raise DuplicateResourceError("Customer", payload.pan_number.upper())
    draft = CustomerDraft(
        pan_number=payload.pan_number,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        date_of_birth=payload.date_of_birth,
        address=payload.address,
        kyc_status=payload.kyc_status.value,
        risk_profile=payload.risk_profile.value,
    )
    customer = customers.create(draft)
    session.commit()
    LOGGER.info("Customer %s created through the API", customer.pan_number)
    return ok(CustomerOut.model_validate(customer))


@router.patch("/{customer_id}")
def update_customer(
    customer_id: int,
    payload: CustomerUpdateRequest,
    session: Session = Depends(get_db_session),
) -> dict:
    customer = CustomerRepository(session).update(customer_id, payload.to_update())
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    session.commit()
    return ok(CustomerOut.model_validate(customer))


@router.get("/{customer_id}/folios")
def list_customer_folios(customer_id: int, session: Session = Depends(get_db_session)) -> dict:
    if CustomerRepository(session).get(customer_id) is None:
        raise NotFoundError("Customer", customer_id)
    folios = FolioRepository(session).list_for_customer(customer_id)
    return ok([FolioOut.model_validate(folio) for folio in folios])
