"""
API Router Aggregator
=============================================================================
CONCEPT: Router Organization

Routes are split across files with APIRouter and aggregated here, then
mounted on the FastAPI app:
  - health.py    → /health, /ready
  - employees.py → /employees/* (HTML views), /api/employees (JSON)
=============================================================================
"""

from fastapi import APIRouter

from src.api.health import router as health_router
from src.api.employees import json_router as employees_json_router
from src.api.employees import router as employees_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(employees_router)
api_router.include_router(employees_json_router)
