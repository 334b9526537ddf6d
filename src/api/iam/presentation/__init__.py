"""IAM presentation layer - aggregate-based organization.

Organizes presentation concerns by domain aggregate following vertical
slicing and DDD principles. Each aggregate package contains its own routes
and models.
"""

from __future__ import annotations

from fastapi import APIRouter

from iam.presentation.identities import routes as identity_routes

router = APIRouter(prefix="/api")

router.include_router(identity_routes.router)

__all__ = ["router"]
