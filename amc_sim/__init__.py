"""Synthetic mutual fund AMC operations: generators, settlement and SIP simulation."""

__version__ = "0.1.0"
