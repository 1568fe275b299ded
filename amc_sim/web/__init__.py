"""FastAPI glue: request dependencies and exception handlers."""

from .dependencies import get_db_session, get_maintenance_jobs, get_orchestrator
from .errors import register_exception_handlers

__all__ = [
    "get_db_session",
    "get_maintenance_jobs",
    "get_orchestrator",
    "register_exception_handlers",
]
