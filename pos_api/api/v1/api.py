"""API v1 router composition."""

from fastapi import APIRouter

from pos_api.api.v1.endpoints import auth, gift_cards, kitchen, orders, payments, vouchers

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(kitchen.router, prefix="/kitchen", tags=["kitchen"])
api_router.include_router(vouchers.router, prefix="/vouchers", tags=["vouchers"])
api_router.include_router(gift_cards.router, prefix="/gift-cards", tags=["gift-cards"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
