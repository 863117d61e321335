from fastapi import APIRouter

from app.api.v1.admin import router as admin_router
from app.api.v1.events import router as events_router
from app.api.v1.me import router as me_router
from app.api.v1.organizations import router as organizations_router
from app.api.v1.sessions import router as sessions_router

router = APIRouter()
router.include_router(me_router)
router.include_router(organizations_router)
router.include_router(events_router)
router.include_router(sessions_router)
router.include_router(admin_router)
