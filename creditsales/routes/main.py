from fastapi import APIRouter
from creditsales.routes.v1 import (
    auth_routes,
    user_routes,
    role_routes,
    product_routes,
    customer_routes,
    customer_request_routes,
    order_routes,
    bill_routes,
    payment_request_routes,
    bill_transaction_routes,
    wallet_routes,
    settings_routes,
)

router = APIRouter()
router.include_router(auth_routes.router)
router.include_router(user_routes.router)
router.include_router(role_routes.router)
router.include_router(product_routes.router)
router.include_router(customer_routes.router)
router.include_router(customer_request_routes.router)
router.include_router(order_routes.router)
router.include_router(bill_routes.router)
router.include_router(payment_request_routes.router)
router.include_router(bill_transaction_routes.router)
router.include_router(wallet_routes.router)
router.include_router(settings_routes.router)
