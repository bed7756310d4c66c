"""
API v1 router.

WHAT: Mount the offer, interaction and status endpoints under /api/v1
WHY: main.py registers one router; versioning lives here
HOW: Each endpoint module exposes `router`, included with its OpenAPI tag
"""

from fastapi import APIRouter

from .endpoints import interactions, offers, status

API_PREFIX = "/api/v1"

api_router = APIRouter(prefix=API_PREFIX)

for endpoint_router, tag in (
    (offers.router, "offers"),
    (interactions.router, "interactions"),
    (status.router, "status"),
):
    api_router.include_router(endpoint_router, tags=[tag])
