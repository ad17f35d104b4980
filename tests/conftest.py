import os
from contextlib import asynccontextmanager
from datetime import timedelta

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("DB_URI", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "creditsales_test")
os.environ.setdefault("BILL_UPDATE_MAX_ATTEMPTS", "3")

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from creditsales.models.users import UserData, UserRole
from creditsales.modules import (
    billing,
    custody,
    customers,
    orders,
    payment_requests,
    wallet,
)
from creditsales.modules.generals import GetCurrentDateTime
from creditsales.routes.v1 import customer_request_routes, customer_routes, user_routes

TRANSACTION_MODULES = [
    billing,
    custody,
    customers,
    orders,
    payment_requests,
    wallet,
    customer_routes,
    customer_request_routes,
    user_routes,
]


@asynccontextmanager
async def _fake_transaction(database):
    # mongomock has no sessions; operations validate before writing
    yield None


@pytest.fixture
def db(monkeypatch):
    for module in TRANSACTION_MODULES:
        monkeypatch.setattr(module, "StartTransaction", _fake_transaction)
    return AsyncMongoMockClient()[f"creditsales_{ObjectId()}"]


class Seeder:
    def __init__(self, db):
        self.db = db

    async def user(self, role: str, name: str = None):
        id_user = ObjectId()
        await self.db.users.insert_one(
            {
                "_id": id_user,
                "name": name or role,
                "email": f"{id_user}@example.com",
                "role": role,
                "status": 1,
            }
        )
        return UserData(
            _id=str(id_user), name=name or role, email=f"{id_user}@example.com", role=role
        )

    async def customer(self, credit_limit=1000, balance=None, billing_type="creditcard"):
        user = await self.user(UserRole.CUSTOMER.value, "Customer")
        id_customer = ObjectId()
        customer = {
            "_id": id_customer,
            "id_user": ObjectId(user.id),
            "name": "Customer",
            "email": user.email,
            "phone_number": "0500000000",
            "address": "Main Street 1",
            "pincode": "600001",
            "credit_limit": credit_limit,
            "balance_credit_limit": credit_limit if balance is None else balance,
            "billing_type": billing_type,
        }
        await self.db.customers.insert_one(customer)
        return customer, user

    async def product(self, price=100, quantity=50):
        product = {"_id": ObjectId(), "name": "Cement Bag", "price": price, "quantity": quantity}
        await self.db.products.insert_one(product)
        return product

    async def bill(self, customer: dict, total_used=500, paid_amount=0, due_in_days=30, status="pending"):
        now = GetCurrentDateTime()
        bill = {
            "_id": ObjectId(),
            "id_customer": customer["_id"],
            "cycle_start": now - timedelta(days=30),
            "cycle_end": now,
            "orders": [],
            "total_used": total_used,
            "amount_due": total_used - paid_amount,
            "paid_amount": paid_amount,
            "due_date": now + timedelta(days=due_in_days),
            "status": status,
            "version": 0,
            "created_at": now,
        }
        await self.db.bills.insert_one(bill)
        return bill


@pytest.fixture
def seed(db):
    return Seeder(db)
