from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import case, func, select, update

from amc_sim.models import Holding, Transaction, TransactionMode, TransactionStatus, TransactionType
from amc_sim.repositories import HoldingRepository, SchemeRepository, TransactionRepository

NOW = datetime(2024, 1, 2, 10, 0)


def _signed_processed_units(session, folio_id: int, scheme_id: int) -> Decimal:
    signed = case(
        (Transaction.transaction_mode == TransactionMode.REDEMPTION.value, -Transaction.units),
        else_=Transaction.units,
    )
    total = session.execute(
        select(func.coalesce(func.sum(signed), 0)).where(
            Transaction.folio_id == folio_id,
            Transaction.scheme_id == scheme_id,
            Transaction.status == TransactionStatus.PROCESSED.value,
        )
    ).scalar()
    return Decimal(str(total)).quantize(Decimal("0.000001"))


def test_units_are_conserved_after_every_processing_step(session, build) -> None:
    scheme = build.scheme(nav="10.0000")
    folio = build.folio(build.customer(), scheme)
    transactions = TransactionRepository(session)
    holdings = HoldingRepository(session)
    steps = [
        ("2500.00", TransactionMode.LUMPSUM),
        ("1000.00", TransactionMode.SIP),
        ("700.00", TransactionMode.REDEMPTION),
        ("333.33", TransactionMode.STP),
        ("150.00", TransactionMode.REDEMPTION),
    ]

    for amount, mode in steps:
        transaction_type = TransactionType.REDEMPTION if mode is TransactionMode.REDEMPTION else TransactionType.PURCHASE
        transaction = build.transaction(folio, amount=amount, mode=mode, transaction_type=transaction_type)
        assert transactions.process(transaction, Decimal("10.0000"), now=NOW)

        holding = holdings.get(folio.id, scheme.id)
        assert Decimal(holding.total_units).quantize(Decimal("0.000001")) == _signed_processed_units(
            session, folio.id, scheme.id
        )

    assert holdings.find_drift() == []


def test_redemption_reduces_units_and_invested_amount(session, build) -> None:
    scheme = build.scheme(nav="10.0000")
    folio = build.folio(build.customer(), scheme)
    transactions = TransactionRepository(session)
    holdings = HoldingRepository(session)

    purchase = build.transaction(folio, amount="1000.00")
    transactions.process(purchase, Decimal("10.0000"), now=NOW)
    assert holdings.get(folio.id, scheme.id).total_units == Decimal("100")

    redemption = build.transaction(
        folio,
        amount="400.00",
        mode=TransactionMode.REDEMPTION,
        transaction_type=TransactionType.REDEMPTION,
    )
    transactions.process(redemption, Decimal("10.0000"), now=NOW)

    holding = holdings.get(folio.id, scheme.id)
    assert redemption.units == Decimal("40")
    assert holding.total_units == Decimal("60")
    assert holding.invested_amount == Decimal("600")
    assert holding.current_value == Decimal("600")


def test_processing_twice_does_not_double_count(session, build) -> None:
    scheme = build.scheme(nav="10.0000")
    folio = build.folio(build.customer(), scheme)
    transactions = TransactionRepository(session)
    transaction = build.transaction(folio, amount="5000.00")

    assert transactions.process(transaction, Decimal("10.0000"), now=NOW) is True
    first = HoldingRepository(session).get(folio.id, scheme.id)
    snapshot = (first.total_units, first.invested_amount, first.current_value)

    assert transactions.process(transaction, Decimal("10.0000"), now=NOW) is False
    second = HoldingRepository(session).get(folio.id, scheme.id)
    assert (second.total_units, second.invested_amount, second.current_value) == snapshot
    assert transaction.is_processed()


def test_current_value_tracks_latest_scheme_nav(session, build) -> None:
    scheme = build.scheme(nav="10.0000")
    folio = build.folio(build.customer(), scheme)
    transaction = build.transaction(folio, amount="5000.00")
    TransactionRepository(session).process(transaction, Decimal("10.0000"), now=NOW)

    SchemeRepository(session).update_nav(scheme, Decimal("12.0000"), date(2024, 1, 3))
    holdings = HoldingRepository(session)
    assert holdings.revalue_all() == 1

    holding = holdings.get(folio.id, scheme.id)
    assert holding.current_value == Decimal("6000")
    assert holding.invested_amount == Decimal("5000")


def test_drift_is_detected_and_rebuilt(session, build) -> None:
    scheme = build.scheme(nav="10.0000")
    folio = build.folio(build.customer(), scheme)
    transaction = build.transaction(folio, amount="5000.00")
    TransactionRepository(session).process(transaction, Decimal("10.0000"), now=NOW)
    session.execute(
        update(Holding)
        .where(Holding.folio_id == folio.id)
        .values(total_units=Decimal("450"), invested_amount=Decimal("4500"))
        .execution_options(synchronize_session=False)
    )

    holdings = HoldingRepository(session)
    drift = holdings.find_drift()
    assert len(drift) == 1
    assert drift[0].holding_units == Decimal("450")
    assert drift[0].transaction_units == Decimal("500")
    assert drift[0].difference == Decimal("-50")

    holdings.rebuild(folio.id, scheme.id)
    holding = holdings.get(folio.id, scheme.id)
    assert holding.total_units == Decimal("500")
    assert holding.invested_amount == Decimal("5000")
    assert holdings.find_drift() == []


def test_portfolio_summary_counts_positive_active_holdings(session, build) -> None:
    scheme = build.scheme(nav="10.0000")
    first = build.folio(build.customer(), scheme)
    second = build.folio(build.customer(), scheme)
    transactions = TransactionRepository(session)
    transactions.process(build.transaction(first, amount="1000.00"), Decimal("10"), now=NOW)
    transactions.process(build.transaction(second, amount="3000.00"), Decimal("10"), now=NOW)

    summary = HoldingRepository(session).portfolio_summary()

    assert summary.total_customers == 2
    assert summary.total_folios == 2
    assert summary.total_holdings == 2
    assert summary.total_aum == Decimal("4000")
    assert summary.total_invested == Decimal("4000")
