from typing import Optional
from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from creditsales.models.generals import Pagination, RejectReasonData
from creditsales.models.orders import (
    InvoiceTypeData,
    OrderAssignData,
    OrderAssignmentStatusData,
    OrderDeliverData,
    OrderInsertData,
    OrderPaymentData,
    OrderStatusData,
    OrderUpdateData,
)
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import GetManyData, GetOneData, JsonFormatter
from creditsales.modules.customers import GetCustomerOfUser
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID
from creditsales.modules.orders import (
    AcceptAssignment,
    AssignOrder,
    CancelOrder,
    CheckOrderOwner,
    CreateOrder,
    DeleteOrder,
    DeliverOrder,
    GetOrder,
    GetOrderInvoice,
    RejectAssignment,
    UpdateOrder,
)
from creditsales.modules.pdf import CreateInvoicePDF
from creditsales.modules.response_message import (
    DATA_HAS_DELETED_MESSAGE,
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/orders", tags=["Orders"])


def OrderListPipeline(query: dict):
    return [
        {"$match": query},
        {"$sort": {"order_date": -1}},
        {
            "$lookup": {
                "from": "customers",
                "let": {"idCustomer": "$id_customer"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$_id", "$$idCustomer"]}}},
                    {"$project": {"name": 1, "phone_number": 1, "address": 1}},
                ],
                "as": "customer",
            }
        },
        {
            "$addFields": {
                "customer": {"$ifNull": [{"$arrayElemAt": ["$customer", 0]}, None]}
            }
        },
    ]


@router.get("")
async def get_orders(
    status: OrderStatusData = None,
    payment: OrderPaymentData = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    query = {}
    if status:
        query["status"] = status.value
    if payment:
        query["payment"] = payment.value

    order_data, count = await GetManyData(
        db.orders, OrderListPipeline(query), {}, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"order_data": order_data, "pagination_info": pagination_info}
    )


@router.get("/my")
async def get_my_orders(
    status: OrderStatusData = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.CUSTOMER])
    customer = await GetCustomerOfUser(db, current_user.id)
    query = {"id_customer": customer["_id"]}
    if status:
        query["status"] = status.value

    order_data, count = await GetManyData(
        db.orders, OrderListPipeline(query), {}, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"order_data": order_data, "pagination_info": pagination_info}
    )


@router.get("/delivery")
async def get_assigned_orders(
    assignment_status: OrderAssignmentStatusData = None,
    status: OrderStatusData = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.DELIVERY_MAN])
    query = {
        "assigned_to": ObjectId(current_user.id),
        "assignment_status": {
            "$in": [
                OrderAssignmentStatusData.ASSIGNED.value,
                OrderAssignmentStatusData.ACCEPTED.value,
                OrderAssignmentStatusData.REJECTED.value,
            ]
        },
    }
    if assignment_status:
        query["assignment_status"] = assignment_status.value
    if status:
        query["status"] = status.value

    order_data, count = await GetManyData(
        db.orders, OrderListPipeline(query), {}, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"order_data": order_data, "pagination_info": pagination_info}
    )


@router.get("/detail/{id}")
async def get_order_detail(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    order_data = await GetOrder(db, ParseObjectID(id))
    if not (
        current_user.role == UserRole.DELIVERY_MAN
        and order_data.get("assigned_to") == ObjectId(current_user.id)
    ):
        await CheckOrderOwner(db, current_user, order_data)

    return JSONResponse(content={"order_data": JsonFormatter(order_data)})


@router.post("/add")
async def create_order(
    data: OrderInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    payload = data.dict(exclude_unset=True)
    payload["payment"] = data.payment.value
    order_data = await CreateOrder(db, current_user, payload)

    return JSONResponse(
        content={
            "message": DATA_HAS_INSERTED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.put("/update/{id}")
async def update_order(
    id: str,
    data: OrderUpdateData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    payload = data.dict(exclude_unset=True)
    if data.payment:
        payload["payment"] = data.payment.value
    order_data = await UpdateOrder(db, current_user, ParseObjectID(id), payload)

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.put("/deliver/{id}")
async def deliver_order(
    id: str,
    data: OrderDeliverData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    order_data = await DeliverOrder(db, current_user, ParseObjectID(id), data.quantity)

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.put("/cancel/{id}")
async def cancel_order(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    order_data = await CancelOrder(db, current_user, ParseObjectID(id))

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.delete("/delete/{id}")
async def delete_order(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    await DeleteOrder(db, current_user, ParseObjectID(id))

    return JSONResponse(content={"message": DATA_HAS_DELETED_MESSAGE})


@router.put("/assign/{id}")
async def assign_order(
    id: str,
    data: OrderAssignData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    order_data = await AssignOrder(
        db, current_user, ParseObjectID(id), ParseObjectID(data.id_delivery_man)
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.put("/accept/{id}")
async def accept_order_assignment(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    order_data = await AcceptAssignment(db, current_user, ParseObjectID(id))

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.put("/reject/{id}")
async def reject_order_assignment(
    id: str,
    data: Optional[RejectReasonData] = Body(None, embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    order_data = await RejectAssignment(
        db, current_user, ParseObjectID(id), data.reason if data else None
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "order_data": JsonFormatter(order_data),
        }
    )


@router.get("/invoice/{id}")
async def get_order_invoice(
    id: str,
    type: InvoiceTypeData = InvoiceTypeData.DELIVERED.value,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    invoice_data = await GetOrderInvoice(db, current_user, ParseObjectID(id), type)
    return JSONResponse(content={"invoice_data": JsonFormatter(invoice_data)})


@router.get("/invoice/{id}/pdf")
async def print_order_invoice_pdf(
    id: str,
    type: InvoiceTypeData = InvoiceTypeData.DELIVERED.value,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    invoice_data = await GetOrderInvoice(db, current_user, ParseObjectID(id), type)
    company_data = await GetOneData(db.company_settings, {}, is_json=False) or {}

    pdf_bytes = CreateInvoicePDF(invoice_data, company_data)
    file_name = f"INVOICE-{invoice_data['type'].upper()}-{id}-{int(GetCurrentDateTime().timestamp())}.pdf"
    return StreamingResponse(
        pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={file_name}"},
    )
