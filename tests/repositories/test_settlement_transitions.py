from datetime import datetime, timedelta
from decimal import Decimal

from amc_sim.domain.settlement import RETRIES_EXHAUSTED_REASON, TECHNICAL_FAILURE_REASON
from amc_sim.models import SettlementStatus, TransactionStatus
from amc_sim.repositories import TransactionRepository

SUBMITTED_AT = datetime(2024, 1, 1, 10, 0)
NOW = datetime(2024, 1, 1, 10, 10)


def test_pending_selection_respects_the_cutoff(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    old = build.transaction(folio, when=SUBMITTED_AT)
    build.transaction(folio, when=NOW)
    repository = TransactionRepository(session)

    pending = repository.find_pending_for_settlement(cutoff=NOW - timedelta(minutes=5), now=NOW)

    assert [transaction.id for transaction in pending] == [old.id]


def test_settled_transactions_leave_the_queue(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    transaction = build.transaction(folio, when=SUBMITTED_AT)
    repository = TransactionRepository(session)

    assert repository.process(transaction, Decimal("10"), now=NOW)
    assert repository.mark_settled(transaction, "CAMS20240101100000000001", now=NOW)
    session.refresh(transaction)

    assert transaction.settlement_status == SettlementStatus.PROCESSED.value
    assert transaction.settlement_attempts == 1
    assert transaction.settlement_processed_at == NOW
    assert repository.find_pending_for_settlement(cutoff=NOW, now=NOW) == []
    assert repository.mark_settled(transaction, "CAMS20240101100000000002", now=NOW) is False


def test_business_rejection_rejects_both_statuses(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    transaction = build.transaction(folio, when=SUBMITTED_AT)
    repository = TransactionRepository(session)

    assert repository.reject(transaction, "Invalid PAN", "CAMS20240101100000000001", now=NOW)
    session.refresh(transaction)

    assert transaction.status == TransactionStatus.REJECTED.value
    assert transaction.settlement_status == SettlementStatus.REJECTED.value
    assert transaction.remarks == "Invalid PAN"
    assert transaction.units == Decimal("0")


def test_technical_failure_schedules_a_backed_off_retry(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    transaction = build.transaction(folio, when=SUBMITTED_AT)
    repository = TransactionRepository(session)

    status = repository.record_settlement_failure(
        transaction,
        TECHNICAL_FAILURE_REASON,
        "CAMS20240101100000000001",
        now=NOW,
        max_attempts=3,
        backoff_seconds=60,
    )
    session.refresh(transaction)

    assert status is SettlementStatus.FAILED
    assert transaction.settlement_status == SettlementStatus.FAILED.value
    assert transaction.status == TransactionStatus.SUBMITTED.value
    assert transaction.settlement_attempts == 1
    assert transaction.next_settlement_attempt_at == NOW + timedelta(seconds=60)

    assert repository.find_pending_for_settlement(cutoff=NOW, now=NOW + timedelta(seconds=30)) == []
    retry = repository.find_pending_for_settlement(cutoff=NOW, now=NOW + timedelta(seconds=60))
    assert [item.id for item in retry] == [transaction.id]


def test_exhausted_retries_reject_the_transaction(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    transaction = build.transaction(folio, when=SUBMITTED_AT)
    repository = TransactionRepository(session)

    statuses = []
    for attempt in range(3):
        statuses.append(
            repository.record_settlement_failure(
                transaction,
                TECHNICAL_FAILURE_REASON,
                f"CAMS2024010110000000000{attempt}",
                now=NOW,
                max_attempts=3,
                backoff_seconds=1,
            )
        )
        session.refresh(transaction)

    assert statuses == [SettlementStatus.FAILED, SettlementStatus.FAILED, SettlementStatus.REJECTED]
    assert transaction.settlement_status == SettlementStatus.REJECTED.value
    assert transaction.status == TransactionStatus.REJECTED.value
    assert transaction.remarks == RETRIES_EXHAUSTED_REASON
    assert transaction.settlement_attempts == 3
    assert transaction.next_settlement_attempt_at is None
