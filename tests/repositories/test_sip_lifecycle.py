from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import update

from amc_sim.core.errors import NotFoundError, SipStateError
from amc_sim.domain.drafts import SipUpdate
from amc_sim.models import SipRegistration, SipStatus, TransactionMode, TransactionStatus
from amc_sim.repositories import HoldingRepository, SipRepository

NOW = datetime(2024, 1, 1, 9, 30)


def _execute(repository: SipRepository, sip: SipRegistration, number: int):
    return repository.execute(
        sip,
        Decimal("10.0000"),
        transaction_number=f"TXN20240101{number:010d}",
        now=NOW,
    )


def test_execution_cap_completes_the_sip(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    sip = build.sip(folio, amount="1000.00", max_executions=3)
    repository = SipRepository(session)

    for number in range(1, 4):
        transaction = _execute(repository, sip, number)
        assert transaction.transaction_mode == TransactionMode.SIP.value
        assert transaction.status == TransactionStatus.PROCESSED.value
        assert transaction.remarks == f"SIP execution for SIP ID: {sip.sip_number}"

    assert sip.execution_count == 3
    assert sip.status == SipStatus.COMPLETED.value
    assert sip.next_execution_date is None
    assert repository.find_due_for_execution(date(2030, 1, 1)) == []

    with pytest.raises(SipStateError):
        _execute(repository, sip, 4)

    holding = HoldingRepository(session).get(folio.id, folio.scheme_id)
    assert holding.total_units == Decimal("300")
    assert holding.invested_amount == Decimal("3000")


def test_monthly_schedule_advances_then_completes(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    sip = build.sip(folio, start=date(2024, 1, 1), max_executions=2)
    repository = SipRepository(session)

    _execute(repository, sip, 1)
    assert sip.execution_count == 1
    assert sip.next_execution_date == date(2024, 2, 1)
    assert sip.status == SipStatus.ACTIVE.value

    _execute(repository, sip, 2)
    assert sip.execution_count == 2
    assert sip.next_execution_date is None
    assert sip.status == SipStatus.COMPLETED.value


def test_end_date_completes_before_the_next_instalment(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    sip = build.sip(folio, start=date(2024, 1, 1), end_date=date(2024, 1, 20))

    _execute(SipRepository(session), sip, 1)

    assert sip.status == SipStatus.COMPLETED.value
    assert sip.execution_count == 1


def test_concurrent_execution_is_refused(session, build) -> None:
    folio = build.folio(build.customer(), build.scheme())
    sip = build.sip(folio)
    session.execute(
        update(SipRegistration)
        .where(SipRegistration.id == sip.id)
        .values(execution_count=1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(SipStateError, match="concurrently"):
        _execute(SipRepository(session), sip, 1)


def test_find_due_skips_future_and_paused_sips(session, build) -> None:
    scheme = build.scheme(nav="25.5000")
    folio = build.folio(build.customer(), scheme)
    due = build.sip(folio, start=date(2024, 1, 1))
    build.sip(folio, start=date(2024, 3, 1))
    paused = build.sip(folio, start=date(2024, 1, 1))
    build.sip(folio, start=date(2023, 1, 1), end_date=date(2023, 12, 31))
    repository = SipRepository(session)
    repository.pause(paused.id)

    found = repository.find_due_for_execution(date(2024, 1, 15))

    assert [item.sip_id for item in found] == [due.id]
    assert found[0].nav == Decimal("25.5000")


def test_manual_transitions(session, build) -> None:
    sip = build.sip(build.folio(build.customer(), build.scheme()))
    repository = SipRepository(session)

    assert repository.pause(sip.id).status == SipStatus.PAUSED.value
    with pytest.raises(SipStateError):
        repository.pause(sip.id)
    assert repository.resume(sip.id).status == SipStatus.ACTIVE.value
    with pytest.raises(SipStateError):
        repository.resume(sip.id)
    assert repository.cancel(sip.id).status == SipStatus.CANCELLED.value

    for transition in (repository.pause, repository.resume, repository.cancel):
        with pytest.raises(SipStateError):
            transition(sip.id)


def test_paused_sip_can_be_cancelled(session, build) -> None:
    sip = build.sip(build.folio(build.customer(), build.scheme()))
    repository = SipRepository(session)
    repository.pause(sip.id)

    assert repository.cancel(sip.id).status == SipStatus.CANCELLED.value


def test_transition_of_unknown_sip_raises_not_found(session) -> None:
    with pytest.raises(NotFoundError):
        SipRepository(session).pause(999)


def test_update_changes_only_given_fields(session, build) -> None:
    sip = build.sip(build.folio(build.customer(), build.scheme()), amount="1000.00")

    updated = SipRepository(session).update(sip.id, SipUpdate(max_executions=12))

    assert updated.max_executions == 12
    assert updated.amount == Decimal("1000.00")


def test_terminal_sip_cannot_be_updated(session, build) -> None:
    sip = build.sip(build.folio(build.customer(), build.scheme()))
    repository = SipRepository(session)
    repository.cancel(sip.id)

    with pytest.raises(SipStateError):
        repository.update(sip.id, SipUpdate(amount=Decimal("2000")))
