import itertools
import random
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from amc_sim.domain.drafts import CustomerDraft, FolioDraft, SipDraft, TransactionDraft
from amc_sim.models import (
    Base,
    Customer,
    Folio,
    KycStatus,
    RiskProfile,
    Scheme,
    SipFrequency,
    SipRegistration,
    Transaction,
    TransactionMode,
    TransactionType,
)
from amc_sim.repositories import (
    CustomerRepository,
    FolioRepository,
    SipRepository,
    TransactionRepository,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


class Builder:
    """Insert minimal, valid rows for scenario tests."""

    def __init__(self, session) -> None:
        self.session = session
        self._sequence = itertools.count(1)

    def scheme(self, *, nav: str = "10.0000", category: str = "EQUITY", code: str | None = None) -> Scheme:
        number = next(self._sequence)
        scheme = Scheme(
            scheme_code=code or f"TST{number:03d}",
            scheme_name=f"Test Scheme {number}",
            amc_code="SIMAMC",
            category=category,
            sub_category=None,
            nav=Decimal(nav),
            is_active=True,
        )
        self.session.add(scheme)
        self.session.flush()
        return scheme

    def customer(self, *, kyc_status: KycStatus = KycStatus.COMPLETED) -> Customer:
        number = next(self._sequence)
        return CustomerRepository(self.session).create(
            CustomerDraft(
                pan_number=f"ABCDE{number:04d}F",
                first_name="Asha",
                last_name=f"Rao{number}",
                email=f"asha.rao{number}@gmail.com",
                phone="9876543210",
                date_of_birth=date(1990, 1, 1),
                address="12 MG Road, Bengaluru",
                kyc_status=kyc_status.value,
                risk_profile=RiskProfile.MODERATE.value,
            )
        )

    def folio(self, customer: Customer, scheme: Scheme) -> Folio:
        number = next(self._sequence)
        return FolioRepository(self.session).create(
            FolioDraft(
                folio_number=f"{number:08d}/{customer.id:02d}",
                customer_id=customer.id,
                scheme_id=scheme.id,
            )
        )

    def transaction(
        self,
        folio: Folio,
        *,
        amount: str = "5000.00",
        mode: TransactionMode = TransactionMode.LUMPSUM,
        transaction_type: TransactionType = TransactionType.PURCHASE,
        when: datetime = datetime(2024, 1, 1, 10, 0),
        nav: Decimal | None = None,
    ) -> Transaction:
        number = next(self._sequence)
        return TransactionRepository(self.session).create(
            TransactionDraft(
                transaction_number=f"TXN20240101{number:010d}",
                folio_id=folio.id,
                scheme_id=folio.scheme_id,
                customer_id=folio.customer_id,
                transaction_type=transaction_type.value,
                transaction_mode=mode.value,
                amount=Decimal(amount),
                transaction_date=when,
                nav=nav,
            )
        )

    def sip(
        self,
        folio: Folio,
        *,
        amount: str = "1000.00",
        frequency: SipFrequency = SipFrequency.MONTHLY,
        start: date = date(2024, 1, 1),
        max_executions: int | None = None,
        end_date: date | None = None,
    ) -> SipRegistration:
        number = next(self._sequence)
        return SipRepository(self.session).create(
            SipDraft(
                sip_number=f"SIP20240101{number:07d}",
                customer_id=folio.customer_id,
                folio_id=folio.id,
                scheme_id=folio.scheme_id,
                amount=Decimal(amount),
                frequency=frequency.value,
                start_date=start,
                end_date=end_date,
                max_executions=max_executions,
            )
        )


@pytest.fixture
def build(session) -> Builder:
    return Builder(session)
