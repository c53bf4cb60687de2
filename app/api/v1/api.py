from fastapi import APIRouter

from app.api.v1.endpoints import accommodations, auth, bookings, establishments

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(
    establishments.router, prefix="/establishments", tags=["establishments"]
)
api_router.include_router(
    accommodations.router, prefix="/accommodations", tags=["accommodations"]
)
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
