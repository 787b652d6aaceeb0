from fastapi import APIRouter

from panel.api.v1.endpoints.health import router as health_router
from panel.api.v1.endpoints.me import router as me_router
from panel.api.v1.endpoints.users import router as users_router
from panel.api.v1.endpoints.shops import router as shops_router
from panel.api.v1.endpoints.listing_drafts import router as listing_drafts_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(me_router, tags=["me"])
router.include_router(users_router, tags=["users"])
router.include_router(shops_router, tags=["shops"])
router.include_router(listing_drafts_router, tags=["listing-drafts"])
