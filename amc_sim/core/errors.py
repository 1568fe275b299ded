"""Exception hierarchy shared by repositories, services and the HTTP layer."""
from __future__ import annotations


class AmcSimulationError(Exception):
    """Base class for errors raised deliberately by the simulation."""


class SimulationStateError(AmcSimulationError):
    """Raised when the orchestrator is asked to do something its state forbids."""


class NotFoundError(AmcSimulationError):
    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} {key} not found")
        self.entity = entity
        self.key = key


class FolioLimitExceededError(AmcSimulationError):
    def __init__(self, customer_id: int, limit: int) -> None:
        super().__init__(f"Customer {customer_id} already holds {limit} active folios")
        self.customer_id = customer_id
        self.limit = limit


class SipStateError(AmcSimulationError):
    """Raised for SIP transitions out of a terminal or unexpected state."""


class NoCandidatesError(AmcSimulationError):
    """Raised when a manual trigger has nothing to work with."""


class UnknownJobError(AmcSimulationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown maintenance job: {name}")
        self.name = name


class DuplicateResourceError(AmcSimulationError):
    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} {key} already exists")
        self.entity = entity
        self.key = key
