"""Synthetic investor identities (names, PAN, contact details)."""
from __future__ import annotations

import random
import string
import unicodedata
from typing import Protocol, Sequence

from faker import Faker

EMAIL_DOMAINS: Sequence[str] = ("gmail.com", "yahoo.com", "hotmail.com", "outlook.com")
MOBILE_PREFIXES: Sequence[str] = ("9", "8", "7", "6")
CITIES: Sequence[str] = (
    "Mumbai, Maharashtra",
    "Delhi, Delhi",
    "Bangalore, Karnataka",
    "Hyderabad, Telangana",
    "Chennai, Tamil Nadu",
    "Kolkata, West Bengal",
    "Pune, Maharashtra",
    "Ahmedabad, Gujarat",
)


class IdentityGenerator(Protocol):
    """Source of plausible personal details; swap in a fixture for tests."""

    def person_name(self) -> tuple[str, str]: ...

    def pan_number(self) -> str: ...

    def email(self, first_name: str, last_name: str) -> str: ...

    def phone(self) -> str: ...

    def address(self) -> str: ...


def _slug(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    ascii_value = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return "".join(ch for ch in ascii_value.lower() if ch.isalnum())


class FakerIdentityGenerator:
    """Indian identities backed by Faker's ``en_IN`` provider.

    Faker draws from the supplied ``rng`` so a seeded generator yields a
    reproducible population.
    """

    def __init__(self, rng: random.Random | None = None, *, locale: str = "en_IN") -> None:
        self._rng = rng or random.Random()
        self._faker = Faker(locale)
        self._faker.random = self._rng

    def person_name(self) -> tuple[str, str]:
        return self._faker.first_name(), self._faker.last_name()

    def pan_number(self) -> str:
        return self._faker.bothify("?????####?", letters=string.ascii_uppercase)

    def email(self, first_name: str, last_name: str) -> str:
        suffix = self._rng.randint(0, 999)
        domain = self._rng.choice(EMAIL_DOMAINS)
        return f"{_slug(first_name)}.{_slug(last_name)}{suffix}@{domain}"

    def phone(self) -> str:
        digits = "".join(str(self._rng.randint(0, 9)) for _ in range(9))
        return self._rng.choice(MOBILE_PREFIXES) + digits

    def address(self) -> str:
        return self._rng.choice(CITIES)
