"""Read and write models for the entity endpoints."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from amc_sim.domain.drafts import CustomerUpdate, SipUpdate
from amc_sim.models import KycStatus, RiskProfile


def _decimal_text(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return format(value, "f")


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    pan_number: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    kyc_status: str
    risk_profile: str
    created_at: datetime


class CustomerCreate(BaseModel):
    pan_number: str = Field(pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$")
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, pattern=r"^[6-9][0-9]{9}$")
    date_of_birth: date | None = None
    address: str | None = None
    kyc_status: KycStatus = KycStatus.PENDING
    risk_profile: RiskProfile = RiskProfile.MODERATE


class CustomerUpdateRequest(BaseModel):
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, pattern=r"^[6-9][0-9]{9}$")
    address: str | None = None
    kyc_status: KycStatus | None = None
    risk_profile: RiskProfile | None = None

    def to_update(self) -> CustomerUpdate:
        return CustomerUpdate(
            email=self.email,
            phone=self.phone,
            address=self.address,
            kyc_status=self.kyc_status.value if self.kyc_status else None,
            risk_profile=self.risk_profile.value if self.risk_profile else None,
        )


class SchemeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scheme_code: str
    scheme_name: str
    amc_code: str
    category: str
    sub_category: str | None = None
    nav: Decimal
    minimum_investment: Decimal
    minimum_sip: Decimal
    exit_load: Decimal
    expense_ratio: Decimal
    is_active: bool
    launch_date: date | None = None

    @field_serializer("nav", "minimum_investment", "minimum_sip", "exit_load", "expense_ratio")
    def _serialize_decimal(self, value: Decimal) -> str | None:
        return _decimal_text(value)


class NavPointOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    nav_date: date
    nav: Decimal

    @field_serializer("nav")
    def _serialize_nav(self, value: Decimal) -> str | None:
        return _decimal_text(value)


class FolioOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    folio_number: str
    customer_id: int
    scheme_id: int
    status: str
    nomination_registered: bool
    joint_holder_1: str | None = None
    joint_holder_2: str | None = None
    created_at: datetime


class HoldingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    folio_id: int
    scheme_id: int
    total_units: Decimal
    invested_amount: Decimal
    current_value: Decimal
    last_transaction_date: datetime | None = None

    @field_serializer("total_units", "invested_amount", "current_value")
    def _serialize_decimal(self, value: Decimal) -> str | None:
        return _decimal_text(value)


class FolioSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_count: int
    total_invested: Decimal
    total_redeemed: Decimal
    last_transaction_date: datetime | None = None

    @field_serializer("total_invested", "total_redeemed")
    def _serialize_decimal(self, value: Decimal) -> str | None:
        return _decimal_text(value)


class FolioDetail(BaseModel):
    folio: FolioOut
    holdings: list[HoldingOut]
    summary: FolioSummaryOut


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_number: str
    folio_id: int
    scheme_id: int
    customer_id: int
    transaction_type: str
    transaction_mode: str
    amount: Decimal
    units: Decimal
    nav: Decimal | None = None
    transaction_date: datetime
    process_date: datetime | None = None
    settlement_date: datetime | None = None
    status: str
    settlement_status: str
    settlement_reference: str | None = None
    settlement_attempts: int = 0
    remarks: str | None = None

    @field_serializer("amount", "units", "nav")
    def _serialize_decimal(self, value: Decimal | None) -> str | None:
        return _decimal_text(value)


class SipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sip_number: str
    customer_id: int
    folio_id: int
    scheme_id: int
    amount: Decimal
    frequency: str
    start_date: date
    end_date: date | None = None
    next_execution_date: date | None = None
    status: str
    execution_count: int
    max_executions: int | None = None

    @field_serializer("amount")
    def _serialize_amount(self, value: Decimal) -> str | None:
        return _decimal_text(value)


class SipUpdateRequest(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    end_date: date | None = None
    max_executions: int | None = Field(default=None, ge=1)

    def to_update(self) -> SipUpdate:
        return SipUpdate(amount=self.amount, end_date=self.end_date, max_executions=self.max_executions)
