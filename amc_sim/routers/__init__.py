"""FastAPI routers for the AMC simulation API."""

from .customers import router as customers_router
from .folios import router as folios_router
from .health import router as health_router
from .maintenance import router as maintenance_router
from .schemes import router as schemes_router
from .simulation import router as simulation_router
from .sips import router as sips_router
from .transactions import router as transactions_router

__all__ = [
    "customers_router",
    "folios_router",
    "health_router",
    "maintenance_router",
    "schemes_router",
    "simulation_router",
    "sips_router",
    "transactions_router",
]
