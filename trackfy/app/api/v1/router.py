"""
API Router.

Aggregates all tracking API endpoints.
"""

from fastapi import APIRouter
from trackfy.app.api.v1.endpoints import codes, generations, admin_ops

router = APIRouter()

# Tracking codes (lookup, history, create, delete)
router.include_router(codes.router)

# Generations and dashboard statistics
router.include_router(generations.router)

# Cleanup and health
router.include_router(admin_ops.router)
