from fastapi import APIRouter
from app.api.v1.routes.checkout import router as checkout_router
from app.api.v1.routes.bookings import router as bookings_router
from app.api.v1.routes.billing import router as billing_router
from app.api.v1.routes.cards import router as cards_router
from app.api.v1.routes.listings import router as listings_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(checkout_router)
api_router.include_router(bookings_router)
api_router.include_router(billing_router)
api_router.include_router(cards_router)
api_router.include_router(listings_router)
