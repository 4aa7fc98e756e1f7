"""
Frontend Router.

Aggregates the server-rendered page routers. Pages are excluded from
the OpenAPI schema.
"""

from fastapi import APIRouter

from asof.frontend.routes import admin, auth, public, seo

router = APIRouter(include_in_schema=False)

router.include_router(public.router)
router.include_router(auth.router)
router.include_router(admin.router, prefix="/admin")
router.include_router(seo.router)
