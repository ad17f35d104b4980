import asyncio

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from creditsales import main as app_main
from creditsales.main import app
from creditsales.models.users import UserRole
from creditsales.modules.customers import pwd_context
from creditsales.modules.database import GetCreditSalesDatabase
from creditsales.modules.generals import GetCurrentDateTime
from creditsales.routes.v1.auth_routes import GetCurrentUser


@pytest.fixture
def client(db):
    app.dependency_overrides[GetCreditSalesDatabase] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def login_as(user):
    app.dependency_overrides[GetCurrentUser] = lambda: user


def test_login_and_verify(client, db):
    id_user = ObjectId()
    asyncio.run(
        db.users.insert_one(
            {
                "_id": id_user,
                "name": "Admin",
                "email": "admin@example.com",
                "password": pwd_context.hash("secret-password"),
                "role": UserRole.ADMIN.value,
                "status": 1,
            }
        )
    )

    response = client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "secret-password"},
    )
    assert response.status_code == 200
    auth_data = response.json()["auth_data"]
    assert auth_data["user_data"]["_id"] == str(id_user)
    assert "password" not in auth_data["user_data"]

    response = client.get(
        "/auth/verify",
        headers={"Authorization": f"Bearer {auth_data['access_token']}"},
    )
    assert response.status_code == 200
    assert response.json()["uid"] == str(id_user)


def test_login_with_wrong_password(client, db):
    asyncio.run(
        db.users.insert_one(
            {
                "email": "admin@example.com",
                "password": pwd_context.hash("secret-password"),
                "name": "Admin",
                "role": UserRole.ADMIN.value,
            }
        )
    )

    response = client.post(
        "/auth/login", json={"email": "admin@example.com", "password": "wrong"}
    )

    assert response.status_code == 401


def test_verify_without_token(client):
    assert client.get("/auth/verify").status_code == 401


def test_core_errors_are_rendered(client, seed):
    _, user = asyncio.run(seed.customer(credit_limit=100))
    product = asyncio.run(seed.product(price=100, quantity=50))
    login_as(user)

    response = client.post(
        "/orders/add",
        json={
            "data": {
                "id_product": str(product["_id"]),
                "ordered_quantity": 5,
                "payment": "credit",
            }
        },
    )

    assert response.status_code == 402
    assert response.json()["detail"]["code"] == "INSUFFICIENT_CREDIT"
    assert response.json()["detail"]["retryable"] is True


def test_create_order_route(client, db, seed):
    customer, user = asyncio.run(seed.customer(credit_limit=1000))
    product = asyncio.run(seed.product(price=100, quantity=50))
    login_as(user)

    response = client.post(
        "/orders/add",
        json={
            "data": {
                "id_product": str(product["_id"]),
                "ordered_quantity": 2,
                "payment": "credit",
            }
        },
    )

    assert response.status_code == 200
    order_data = response.json()["order_data"]
    assert order_data["total_amount"] == 200
    assert order_data["id_customer"] == str(customer["_id"])


def test_role_gate(client, seed):
    _, user = asyncio.run(seed.customer())
    login_as(user)

    response = client.put(
        "/settings/company", json={"data": {"company_name": "Acme Traders"}}
    )

    assert response.status_code == 403


def test_malformed_id(client, seed):
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    login_as(admin)

    assert client.get("/bills/detail/not-an-id").status_code == 400


def test_company_settings_upsert(client, seed):
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    login_as(admin)

    response = client.put(
        "/settings/company", json={"data": {"company_name": "Acme Traders"}}
    )
    assert response.status_code == 200

    response = client.get("/settings/company")
    assert response.json()["settings_data"]["company_name"] == "Acme Traders"


def test_invoice_pdf(client, seed):
    _, user = asyncio.run(seed.customer(credit_limit=1000))
    product = asyncio.run(seed.product(price=100, quantity=50))
    login_as(user)
    order_data = client.post(
        "/orders/add",
        json={
            "data": {
                "id_product": str(product["_id"]),
                "ordered_quantity": 2,
                "payment": "credit",
            }
        },
    ).json()["order_data"]

    response = client.get(f"/orders/invoice/{order_data['_id']}/pdf?type=pending")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_receipt_pdf(client, db, seed):
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    customer, _ = asyncio.run(seed.customer())
    id_order = ObjectId()
    id_transaction = ObjectId()
    asyncio.run(db.orders.insert_one({"_id": id_order, "id_customer": customer["_id"]}))
    asyncio.run(
        db.payment_transactions.insert_one(
            {
                "_id": id_transaction,
                "id_order": id_order,
                "id_delivery_man": ObjectId(delivery_man.id),
                "amount": 250,
                "method": "cash",
                "date": GetCurrentDateTime(),
                "status": "received",
            }
        )
    )
    login_as(delivery_man)

    response = client.get(f"/wallet/receipt/{id_transaction}")

    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_pay_bill_rejects_nan_body(client, db, seed):
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=500))
    bill = asyncio.run(seed.bill(customer, total_used=500))
    login_as(admin)

    response = client.put(
        f"/bills/pay/{bill['_id']}",
        content='{"data": {"amount": NaN, "method": "cash"}}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    stored = asyncio.run(db.bills.find_one({"_id": bill["_id"]}))
    assert stored["amount_due"] == 500
    assert stored["status"] == "pending"


def test_product_with_pending_order_is_kept(client, db, seed):
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    _, user = asyncio.run(seed.customer(credit_limit=1000))
    product = asyncio.run(seed.product(price=100, quantity=50))
    login_as(user)
    order_data = client.post(
        "/orders/add",
        json={
            "data": {
                "id_product": str(product["_id"]),
                "ordered_quantity": 2,
                "payment": "credit",
            }
        },
    ).json()["order_data"]
    login_as(admin)

    response = client.delete(f"/products/delete/{product['_id']}")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INVALID_STATE"
    assert asyncio.run(db.products.count_documents({"_id": product["_id"]})) == 1

    assert client.put(f"/orders/cancel/{order_data['_id']}").status_code == 200
    response = client.delete(f"/products/delete/{product['_id']}")
    assert response.status_code == 200
    assert asyncio.run(db.products.count_documents({"_id": product["_id"]})) == 0


def test_lifespan_opens_and_closes_database(monkeypatch):
    calls = []

    async def connect():
        calls.append("connect")

    async def disconnect():
        calls.append("disconnect")

    monkeypatch.setattr(app_main, "ConnectToMongoDB", connect)
    monkeypatch.setattr(app_main, "DisconnectMongoDB", disconnect)

    with TestClient(app) as client:
        assert calls == ["connect"]
        assert client.get("/").status_code == 200

    assert calls == ["connect", "disconnect"]


def test_admin_updates_field_agent(client, db, seed):
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    sales_man = asyncio.run(seed.user(UserRole.SALES_MAN.value, "Arun"))
    login_as(admin)

    response = client.put(
        f"/user/update/{sales_man.id}",
        json={
            "data": {
                "name": "Arun Kumar",
                "email": "arun@example.com",
                "status": 0,
                "role": UserRole.DELIVERY_MAN.value,
            }
        },
    )

    assert response.status_code == 200
    stored = asyncio.run(db.users.find_one({"_id": ObjectId(sales_man.id)}))
    assert stored["name"] == "Arun Kumar"
    assert stored["role"] == UserRole.DELIVERY_MAN.value
    assert stored["status"] == 0


def test_admin_can_not_update_customer_login(client, seed):
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    _, user = asyncio.run(seed.customer())
    login_as(admin)

    response = client.put(
        f"/user/update/{user.id}",
        json={
            "data": {
                "name": "Someone",
                "email": user.email,
                "role": UserRole.SALES_MAN.value,
            }
        },
    )

    assert response.status_code == 400


def test_edit_profile_syncs_customer_account(client, db, seed):
    customer, user = asyncio.run(seed.customer())
    other = asyncio.run(seed.user(UserRole.SALES_MAN.value))
    login_as(user)

    response = client.put(
        "/user/edit-profile",
        json={"data": {"name": "Corner Shop", "email": other.email}},
    )
    assert response.status_code == 400

    response = client.put(
        "/user/edit-profile",
        json={
            "data": {
                "name": "Corner Shop",
                "email": "corner@example.com",
                "phone_number": "0500000009",
            }
        },
    )

    assert response.status_code == 200
    stored_user = asyncio.run(db.users.find_one({"_id": ObjectId(user.id)}))
    assert stored_user["email"] == "corner@example.com"
    stored_customer = asyncio.run(db.customers.find_one({"_id": customer["_id"]}))
    assert stored_customer["name"] == "Corner Shop"
    assert stored_customer["phone_number"] == "0500000009"
