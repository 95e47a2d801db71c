"""API routes."""

from fastapi import APIRouter

from stockflow.api.routes import deductions, mappings, reports

api_router = APIRouter()

api_router.include_router(deductions.router, prefix="/deductions", tags=["deductions"])
api_router.include_router(mappings.router, prefix="/mappings", tags=["mappings"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
