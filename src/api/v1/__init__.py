"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import designs

router = APIRouter()

router.include_router(designs.router, tags=["Designs"])
