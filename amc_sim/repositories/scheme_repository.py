"""Data access for schemes and NAV history."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import aliased

from amc_sim.core.log import get_logger
from amc_sim.domain.catalog import DEFAULT_SCHEMES
from amc_sim.domain.drafts import SchemeDraft
from amc_sim.models import NavHistory, Scheme

from .base import BaseRepository

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class NavMovement:
    scheme_code: str
    scheme_name: str
    previous_nav: Decimal
    current_nav: Decimal

    @property
    def change_percent(self) -> Decimal:
        return ((self.current_nav - self.previous_nav) / self.previous_nav * 100).quantize(Decimal("0.0001"))


class SchemeRepository(BaseRepository):
    """Schemes, their current NAV and the NAV time series."""

    def get(self, scheme_id: int) -> Scheme | None:
        return self._session.get(Scheme, scheme_id)

    def find_by_code(self, scheme_code: str) -> Scheme | None:
        return self._session.scalars(select(Scheme).where(Scheme.scheme_code == scheme_code)).first()

    def list_active(self, *, limit: int | None = 50, offset: int = 0) -> list[Scheme]:
        statement = select(Scheme).where(Scheme.is_active.is_(True)).order_by(Scheme.scheme_name)
        if limit is not None:
            statement = statement.limit(limit).offset(offset)
        return list(self._session.scalars(statement))

    def list_by_category(self, category: str) -> list[Scheme]:
        statement = (
            select(Scheme)
            .where(Scheme.category == category.upper(), Scheme.is_active.is_(True))
            .order_by(Scheme.scheme_name)
        )
        return list(self._session.scalars(statement))

    def count_active(self) -> int:
        return self._scalar(select(func.count()).select_from(Scheme).where(Scheme.is_active.is_(True)))

    def bulk_create(self, drafts: Iterable[SchemeDraft], *, launch_date: date | None = None) -> list[Scheme]:
        """Insert every draft whose scheme code is not yet taken.

        Runs inside the caller's transaction, so the batch commits or rolls
        back as a whole.
        """

        created: list[Scheme] = []
        for draft in drafts:
            if self.find_by_code(draft.scheme_code) is not None:
                continue
            row = draft.as_row()
            row["launch_date"] = draft.launch_date or launch_date
            scheme = Scheme(**row)
            self._session.add(scheme)
            created.append(scheme)
        self._session.flush()
        LOGGER.info("Bulk scheme insert created %d schemes", len(created))
        return created

    def ensure_defaults(self, today: date, *, amc_code: str = "SIMAMC") -> list[Scheme]:
        """Seed the default line-up unless an active scheme already exists."""

        if self.count_active() > 0:
            LOGGER.debug("Schemes already present; skipping default seed")
            return []
        drafts = [replace(draft, amc_code=amc_code) for draft in DEFAULT_SCHEMES]
        created = self.bulk_create(drafts, launch_date=today)
        for scheme in created:
            self.record_nav(scheme.id, today, Decimal(scheme.nav))
        LOGGER.info("Seeded %d default schemes", len(created))
        return created

    def update_nav(self, scheme: Scheme, new_nav: Decimal, nav_date: date) -> Scheme:
        """Move the scheme to ``new_nav`` and record the day's NAV point."""

        self._session.execute(
            update(Scheme)
            .where(Scheme.id == scheme.id)
            .values(nav=new_nav, updated_at=datetime.now())
        )
        self.record_nav(scheme.id, nav_date, new_nav)
        LOGGER.debug("NAV updated scheme=%s nav=%s", scheme.scheme_code, new_nav)
        return scheme

    def record_nav(self, scheme_id: int, nav_date: date, nav: Decimal) -> None:
        """Upsert the NAV point for ``(scheme_id, nav_date)``; the latest value wins."""

        self._upsert(
            NavHistory.__table__,
            {"scheme_id": scheme_id, "nav_date": nav_date, "nav": nav, "created_at": datetime.now()},
            conflict_columns=("scheme_id", "nav_date"),
            updates=lambda incoming: {"nav": incoming.nav},
        )

    def nav_history(
        self,
        scheme_id: int,
        *,
        from_date: date,
        to_date: date,
    ) -> list[NavHistory]:
        statement = (
            select(NavHistory)
            .where(
                NavHistory.scheme_id == scheme_id,
                NavHistory.nav_date.between(from_date, to_date),
            )
            .order_by(NavHistory.nav_date.desc())
        )
        return list(self._session.scalars(statement))

    def prune_nav_history(self, before: date) -> int:
        """Delete NAV points dated strictly before ``before``."""

        result = self._session.execute(delete(NavHistory).where(NavHistory.nav_date < before))
        return result.rowcount or 0

    def nav_movers(self, previous: date, current: date, *, limit: int = 5) -> list[NavMovement]:
        """Schemes with NAV points on both days, largest absolute move first."""

        before = aliased(NavHistory)
        after = aliased(NavHistory)
        statement = (
            select(Scheme.scheme_code, Scheme.scheme_name, before.nav, after.nav)
            .join(before, (before.scheme_id == Scheme.id) & (before.nav_date == previous))
            .join(after, (after.scheme_id == Scheme.id) & (after.nav_date == current))
            .where(before.nav > 0)
        )
        movers = [
            NavMovement(
                scheme_code=row[0],
                scheme_name=row[1],
                previous_nav=self._to_decimal(row[2]),
                current_nav=self._to_decimal(row[3]),
            )
            for row in self._session.execute(statement)
        ]
        movers.sort(key=lambda movement: abs(movement.change_percent), reverse=True)
        return movers[:limit]
