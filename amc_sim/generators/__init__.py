"""Synthetic entity generators used by the simulation."""

from .identity import FakerIdentityGenerator, IdentityGenerator
from .records import (
    TRANSACTION_KINDS,
    generate_customer,
    generate_folio,
    generate_sip,
    generate_transaction,
    pick_transaction_kind,
)

__all__ = [
    "FakerIdentityGenerator",
    "IdentityGenerator",
    "TRANSACTION_KINDS",
    "generate_customer",
    "generate_folio",
    "generate_sip",
    "generate_transaction",
    "pick_transaction_kind",
]
