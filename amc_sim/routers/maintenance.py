"""Inspect and trigger the calendar maintenance jobs."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from amc_sim.schemas import JobRunOut, JobStatusOut, ok
from amc_sim.services import MaintenanceJobs
from amc_sim.web.dependencies import get_maintenance_jobs

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


@router.get("/jobs")
def list_jobs(jobs: MaintenanceJobs = Depends(get_maintenance_jobs)) -> dict:
    return ok([JobStatusOut(**status) for status in jobs.get_job_status()])


@router.post("/jobs/{name}/run")
def run_job(name: str, jobs: MaintenanceJobs = Depends(get_maintenance_jobs)) -> dict:
    job = jobs.run_job(name)
    return ok(
        JobRunOut(
            name=job.name,
            status=job.last_status,
            ran_at=job.last_run_at,
            error=job.last_error,
            result=jobs.describe_result(job),
        )
    )
