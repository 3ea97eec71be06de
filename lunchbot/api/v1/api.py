"""API v1 router composition."""

from fastapi import APIRouter

from lunchbot.api.v1.endpoints import admin, auth, menu, settlements

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(settlements.router, prefix="/settlements", tags=["settlements"])
