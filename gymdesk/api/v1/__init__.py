"""
API v1 routes
"""
from fastapi import APIRouter
from gymdesk.api.v1 import plans, users, trainers, reports, financials
from gymdesk.api.v1.subscriptions import memberships_router, trainings_router

api_router = APIRouter()

api_router.include_router(plans.router, prefix="/plans", tags=["plans"])
api_router.include_router(memberships_router, prefix="/memberships", tags=["memberships"])
api_router.include_router(trainings_router, prefix="/trainings", tags=["trainings"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(trainers.router, prefix="/trainers", tags=["trainers"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(financials.router, prefix="/financials", tags=["financials"])
