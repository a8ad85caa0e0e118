"""
Dashboard routes
================

Routes:
  GET /api/v1/dashboard/client     -- client landing page figures
  GET /api/v1/dashboard/employee   -- employee landing page figures
"""

from __future__ import annotations

from fastapi import APIRouter

from manpower.api.deps import ClientUser, DBSession, EmployeeUser
from manpower.api.schemas.dashboard import ClientDashboardOut, EmployeeDashboardOut
from manpower.services import dashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/client", response_model=ClientDashboardOut, summary="Client dashboard")
async def client_dashboard(db: DBSession, current_user: ClientUser) -> ClientDashboardOut:
    return ClientDashboardOut.model_validate(await dashboardService.client_dashboard(db, current_user))


@router.get("/employee", response_model=EmployeeDashboardOut, summary="Employee dashboard")
async def employee_dashboard(db: DBSession, current_user: EmployeeUser) -> EmployeeDashboardOut:
    return EmployeeDashboardOut.model_validate(
        await dashboardService.employee_dashboard(db, current_user)
    )
