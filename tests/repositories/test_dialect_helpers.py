from datetime import date, datetime
from decimal import Decimal
from unittest.mock import create_autospec

import pytest
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session

from amc_sim.models import Holding
from amc_sim.repositories.base import BaseRepository


def _repository_on(dialect: str) -> tuple[BaseRepository, Session]:
    session = create_autospec(Session, instance=True)
    session.get_bind.return_value.dialect.name = dialect
    return BaseRepository(session), session


_DIALECTS = {"mysql": mysql.dialect, "postgresql": postgresql.dialect, "sqlite": sqlite.dialect}


def _compile(repository: BaseRepository, session: Session) -> str:
    statement = session.execute.call_args.args[0]
    return str(statement.compile(dialect=_DIALECTS[repository._dialect]()))


def _upsert_holding(repository: BaseRepository) -> None:
    table = Holding.__table__
    repository._upsert(
        table,
        {"folio_id": 1, "scheme_id": 2, "customer_id": 3, "total_units": Decimal("10")},
        conflict_columns=("folio_id", "scheme_id"),
        updates=lambda incoming: {"total_units": table.c.total_units + incoming.total_units},
    )


def test_mysql_upsert_uses_on_duplicate_key() -> None:
    """MySQL folds the increment into ON DUPLICATE KEY UPDATE."""

    repository, session = _repository_on("mysql")

    _upsert_holding(repository)

    sql = _compile(repository, session)
    assert "ON DUPLICATE KEY UPDATE" in sql
    assert "VALUES(total_units)" in sql


@pytest.mark.parametrize("dialect", ["postgresql", "sqlite"])
def test_conflict_upsert_targets_the_position_key(dialect: str) -> None:
    repository, session = _repository_on(dialect)

    _upsert_holding(repository)

    sql = _compile(repository, session)
    assert "ON CONFLICT (folio_id, scheme_id) DO UPDATE" in sql
    assert "excluded.total_units" in sql


def test_unsupported_dialect_is_refused() -> None:
    repository, session = _repository_on("oracle")

    with pytest.raises(NotImplementedError):
        _upsert_holding(repository)
    session.execute.assert_not_called()


@pytest.mark.parametrize(("dialect", "function"), [("mysql", "rand"), ("mariadb", "rand"), ("sqlite", "random")])
def test_random_order_function(dialect: str, function: str) -> None:
    repository, _ = _repository_on(dialect)

    assert repository._random_order().name == function


def test_value_coercion() -> None:
    assert BaseRepository._to_decimal(None) == Decimal(0)
    assert BaseRepository._to_decimal(1.5) == Decimal("1.5")
    assert BaseRepository._coerce_date(datetime(2024, 1, 2, 3, 4)) == date(2024, 1, 2)
    assert BaseRepository._coerce_date("2024-01-02 00:00:00") == date(2024, 1, 2)
    with pytest.raises(ValueError):
        BaseRepository._coerce_date(None)
