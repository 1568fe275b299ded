"""Baseline scheme line-up seeded when the store has no active schemes."""
from __future__ import annotations

from decimal import Decimal

from .drafts import SchemeDraft


def _scheme(code, name, category, sub_category, nav, minimum, minimum_sip, exit_load, expense_ratio):
    return SchemeDraft(
        scheme_code=code,
        scheme_name=name,
        category=category,
        sub_category=sub_category,
        nav=Decimal(nav),
        minimum_investment=Decimal(minimum),
        minimum_sip=Decimal(minimum_sip),
        exit_load=Decimal(exit_load),
        expense_ratio=Decimal(expense_ratio),
    )


DEFAULT_SCHEMES: tuple[SchemeDraft, ...] = (
    _scheme("EQU001", "Simulation Large Cap Equity Fund", "EQUITY", "LARGE_CAP", "15.2500", "5000.00", "1000.00", "1.00", "2.25"),
    _scheme("EQU002", "Simulation Mid Cap Equity Fund", "EQUITY", "MID_CAP", "22.3400", "5000.00", "1000.00", "1.00", "2.50"),
    _scheme("EQU003", "Simulation Small Cap Equity Fund", "EQUITY", "SMALL_CAP", "18.7800", "5000.00", "1000.00", "1.00", "2.75"),
    _scheme("DEB001", "Simulation Short Term Debt Fund", "DEBT", "SHORT_TERM", "11.4500", "1000.00", "500.00", "0.25", "1.50"),
    _scheme("DEB002", "Simulation Long Term Debt Fund", "DEBT", "LONG_TERM", "13.2100", "1000.00", "500.00", "0.50", "1.75"),
    _scheme("HYB001", "Simulation Balanced Hybrid Fund", "HYBRID", "BALANCED", "14.6700", "1000.00", "500.00", "1.00", "2.00"),
    _scheme("HYB002", "Simulation Conservative Hybrid Fund", "HYBRID", "CONSERVATIVE", "12.8900", "1000.00", "500.00", "0.50", "1.75"),
    _scheme("ELS001", "Simulation Tax Saver ELSS Fund", "EQUITY", "ELSS", "19.4300", "500.00", "500.00", "0.00", "2.25"),
    _scheme("INT001", "Simulation International Equity Fund", "EQUITY", "INTERNATIONAL", "16.8900", "5000.00", "1000.00", "1.00", "2.50"),
    _scheme("SEC001", "Simulation Sectoral Banking Fund", "EQUITY", "SECTORAL", "21.5600", "5000.00", "1000.00", "1.00", "2.75"),
)
