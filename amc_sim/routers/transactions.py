"""Transaction lookups."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from amc_sim.core.errors import NotFoundError
from amc_sim.repositories import TransactionRepository
from amc_sim.schemas import TransactionOut, ok
from amc_sim.web.dependencies import get_db_session

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("/by-number/{transaction_number}")
def get_transaction_by_number(transaction_number: str, session: Session = Depends(get_db_session)) -> dict:
    transaction = TransactionRepository(session).find_by_number(transaction_number)
    if transaction is None:
        raise NotFoundError("Transaction", transaction_number)
    return ok(TransactionOut.model_validate(transaction))


@router.get("/{transaction_id}")
def get_transaction(transaction_id: int, session: Session = Depends(get_db_session)) -> dict:
    transaction = TransactionRepository(session).get(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction", transaction_id)
    return ok(TransactionOut.model_validate(transaction))
