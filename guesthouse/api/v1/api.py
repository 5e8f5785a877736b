from fastapi import APIRouter
from guesthouse.api.v1.routes.auth import router as auth_router
from guesthouse.api.v1.routes.rooms import router as rooms_router
from guesthouse.api.v1.routes.cart import router as cart_router
from guesthouse.api.v1.routes.bookings import router as bookings_router
from guesthouse.api.v1.routes.admin import router as admin_router
from guesthouse.api.v1.routes.reports import router as reports_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth_router)
api_router.include_router(rooms_router)
api_router.include_router(cart_router)
api_router.include_router(bookings_router)
api_router.include_router(admin_router)
api_router.include_router(reports_router)
