"""
Main API router
"""
from fastapi import APIRouter

from leave_mgmt.api.v1 import (
    health,
    auth,
    employees,
    policies,
    workflows,
    balances,
    holidays,
    leaves,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(policies.router, prefix="/policies", tags=["policies"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(balances.router, prefix="/balances", tags=["balances"])
api_router.include_router(holidays.router, prefix="/holidays", tags=["holidays"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
