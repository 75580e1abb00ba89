"""API routes."""

from payroll_recon.api.routes.health import router as health_router
from payroll_recon.api.routes.payroll_runs import router as payroll_runs_router

__all__ = ["payroll_runs_router", "health_router"]
