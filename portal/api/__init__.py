"""API routes mounted under the configured prefix (default /api)."""

from fastapi import APIRouter

from portal.api import admin_wiki, auth, health, tickets, wiki

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, tags=["auth"])
router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
router.include_router(wiki.router, prefix="/wiki", tags=["wiki"])
router.include_router(admin_wiki.router, prefix="/admin/wiki", tags=["admin"])

root_router = APIRouter()
root_router.include_router(auth.root_router, tags=["auth"])
