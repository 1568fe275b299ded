"""Long-running services: the simulation orchestrator and maintenance jobs."""

from .maintenance import CalendarSchedule, MaintenanceJobs
from .scheduler import RecurringTask, TaskScheduler
from .simulation import SimulationOrchestrator, SimulationState

__all__ = [
    "CalendarSchedule",
    "MaintenanceJobs",
    "RecurringTask",
    "SimulationOrchestrator",
    "SimulationState",
    "TaskScheduler",
]
