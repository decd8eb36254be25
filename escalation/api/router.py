from fastapi import APIRouter

from escalation.api import admin, auth, leagues, members

router = APIRouter()
router.include_router(auth.router)
router.include_router(leagues.router)
router.include_router(members.router)
router.include_router(admin.router)
