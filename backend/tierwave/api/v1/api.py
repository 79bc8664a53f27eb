"""API routes for the FastAPI application."""

from fastapi import APIRouter

from tierwave.api.v1.endpoints import billing, realtime, subscriptions

api_router = APIRouter()
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
api_router.include_router(subscriptions.router, prefix="/subscription", tags=["subscription"])
api_router.include_router(realtime.router, tags=["realtime"])
