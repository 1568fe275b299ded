"""Immutable value objects describing rows that are about to be inserted."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class CustomerDraft:
    pan_number: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    date_of_birth: date | None
    address: str | None
    kyc_status: str
    risk_profile: str

    def as_row(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class SchemeDraft:
    scheme_code: str
    scheme_name: str
    category: str
    sub_category: str | None
    nav: Decimal
    minimum_investment: Decimal = Decimal("1000.00")
    minimum_sip: Decimal = Decimal("500.00")
    exit_load: Decimal = Decimal("0.00")
    expense_ratio: Decimal = Decimal("1.50")
    amc_code: str = "SIMAMC"
    is_active: bool = True
    launch_date: date | None = None

    def as_row(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class FolioDraft:
    folio_number: str
    customer_id: int
    scheme_id: int
    nomination_registered: bool = False
    joint_holder_1: str | None = None
    joint_holder_2: str | None = None

    def as_row(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class TransactionDraft:
    transaction_number: str
    folio_id: int
    scheme_id: int
    customer_id: int
    transaction_type: str
    transaction_mode: str
    amount: Decimal
    transaction_date: datetime
    nav: Decimal | None = None
    remarks: str | None = None
    source_scheme_id: int | None = None

    def as_row(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class SipDraft:
    sip_number: str
    customer_id: int
    folio_id: int
    scheme_id: int
    amount: Decimal
    frequency: str
    start_date: date
    end_date: date | None = None
    max_executions: int | None = None

    def as_row(self) -> dict[str, object]:
        row = asdict(self)
        row["next_execution_date"] = self.start_date
        return row


@dataclass(frozen=True)
class CustomerUpdate:
    """Fields of a customer that may change after creation.

    Identity fields (PAN, name, date of birth) are deliberately absent.
    """

    email: str | None = None
    phone: str | None = None
    address: str | None = None
    kyc_status: str | None = None
    risk_profile: str | None = None

    def changes(self) -> dict[str, object]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class SipUpdate:
    amount: Decimal | None = None
    end_date: date | None = None
    max_executions: int | None = None

    def changes(self) -> dict[str, object]:
        return {key: value for key, value in asdict(self).items() if value is not None}
