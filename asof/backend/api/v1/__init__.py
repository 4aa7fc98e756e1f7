"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from asof.backend.api.v1.endpoints import auth, contact, media, posts, taxonomy

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(posts.router, prefix="/posts", tags=["posts"])
router.include_router(taxonomy.router, tags=["taxonomy"])
router.include_router(media.router, prefix="/media", tags=["media"])
router.include_router(contact.router, prefix="/contact", tags=["contact"])
