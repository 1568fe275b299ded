from datetime import date, datetime
from decimal import Decimal

from fastapi.encoders import jsonable_encoder

from amc_sim.schemas import ok
from amc_sim.schemas.entities import FolioSummaryOut, HoldingOut, NavPointOut, SipOut, TransactionOut


def test_nav_point_renders_fixed_scale_text() -> None:
    point = NavPointOut.model_validate({"nav_date": date(2024, 1, 1), "nav": Decimal("10.0000")})

    assert point.model_dump() == {"nav_date": date(2024, 1, 1), "nav": "10.0000"}
    assert point.model_dump(mode="json") == {"nav_date": "2024-01-01", "nav": "10.0000"}


def test_decimal_fields_serialise_inside_the_envelope() -> None:
    holding = HoldingOut(
        folio_id=1,
        scheme_id=2,
        total_units=Decimal("500.000000"),
        invested_amount=Decimal("5000.00"),
        current_value=Decimal("5061.70"),
    )
    summary = FolioSummaryOut(
        transaction_count=2,
        total_invested=Decimal("2000.00"),
        total_redeemed=Decimal("0.00"),
    )

    body = jsonable_encoder(ok({"holdings": [holding], "summary": summary}))

    assert body["success"] is True
    assert body["data"]["holdings"][0]["total_units"] == "500.000000"
    assert body["data"]["holdings"][0]["current_value"] == "5061.70"
    assert body["data"]["summary"] == {
        "transaction_count": 2,
        "total_invested": "2000.00",
        "total_redeemed": "0.00",
        "last_transaction_date": None,
    }


def test_transaction_without_nav_keeps_null() -> None:
    transaction = TransactionOut(
        id=1,
        transaction_number="TXN202401010000000001",
        folio_id=1,
        scheme_id=1,
        customer_id=1,
        transaction_type="PURCHASE",
        transaction_mode="LUMPSUM",
        amount=Decimal("5000.00"),
        units=Decimal("0"),
        transaction_date=datetime(2024, 1, 1, 10, 0),
        status="SUBMITTED",
        settlement_status="PENDING",
    )

    dumped = transaction.model_dump(mode="json")

    assert (dumped["amount"], dumped["units"], dumped["nav"]) == ("5000.00", "0", None)


def test_sip_amount_is_text() -> None:
    sip = SipOut(
        id=1,
        sip_number="SIP202401010000001",
        customer_id=1,
        folio_id=1,
        scheme_id=1,
        amount=Decimal("1500.00"),
        frequency="MONTHLY",
        start_date=date(2024, 1, 1),
        status="ACTIVE",
        execution_count=0,
    )

    assert sip.model_dump(mode="json")["amount"] == "1500.00"
