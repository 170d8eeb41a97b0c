"""
Top‑level router for version 1 of the API.

This router aggregates the domain routers (accounts, communities,
publications, comments and the realtime feed) under a unified prefix.
When a new domain is introduced, include its router here.
"""

from fastapi import APIRouter

from .endpoints import (
    accounts,
    communities,
    publications,
    comments,
    realtime,
)

router = APIRouter()

# Account routes keep the student facing paths (``/estudiante/...`` and
# ``/confirmar/{token}``) used by the web client, so no prefix here.
router.include_router(accounts.router, tags=["accounts"])
router.include_router(communities.router, prefix="/comunidades", tags=["communities"])
router.include_router(publications.router, tags=["publications"])
router.include_router(comments.router, tags=["comments"])
router.include_router(realtime.router, tags=["realtime"])
