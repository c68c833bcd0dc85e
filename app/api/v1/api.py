from fastapi import APIRouter
from app.core.config import settings
from app.api.v1.routes.auth import router as auth_router
from app.api.v1.routes.bookings import router as bookings_router
from app.api.v1.routes.tickets import router as tickets_router
from app.api.v1.routes.users import router as users_router
from app.api.v1.routes.health import router as health_router

api_router = APIRouter(prefix=settings.API_PREFIX)
api_router.include_router(auth_router)
api_router.include_router(bookings_router)
api_router.include_router(tickets_router)
api_router.include_router(users_router)
api_router.include_router(health_router)
