from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from creditsales.models.generals import PaymentMethodData
from creditsales.models.settlements import WalletCollectData, WalletTransactionData
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import GetListData, JsonFormatter
from creditsales.modules.custody import (
    PAYMENT_TRANSACTION_CUSTODY,
    DecideAdminRequest,
    ForwardToAdmin,
    MarkReceivedByAdmin,
)
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import ParseObjectID
from creditsales.modules.pdf import CreateReceiptPDF
from creditsales.modules.response_message import (
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
)
from creditsales.modules.wallet import CollectPayment, GetReceiptData, GetWallet
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.post("/collect")
async def collect_payment(
    data: WalletCollectData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    payload = data.dict(exclude_unset=True)
    payload["method"] = data.method.value
    transaction_data = await CollectPayment(db, current_user, payload)

    return JSONResponse(
        content={
            "message": DATA_HAS_INSERTED_MESSAGE,
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.get("/cash")
async def get_cash_wallet(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data, total_amount = await GetWallet(
        db, current_user, PaymentMethodData.CASH
    )
    return JSONResponse(
        content={"transaction_data": transaction_data, "total_amount": total_amount}
    )


@router.get("/cheque")
async def get_cheque_wallet(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data, total_amount = await GetWallet(
        db, current_user, PaymentMethodData.CHEQUE
    )
    return JSONResponse(
        content={"transaction_data": transaction_data, "total_amount": total_amount}
    )


@router.post("/request-pay-cash")
async def request_pay_cash(
    data: WalletTransactionData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await ForwardToAdmin(
        db,
        PAYMENT_TRANSACTION_CUSTODY,
        current_user,
        ParseObjectID(data.id_transaction),
        method=PaymentMethodData.CASH.value,
    )
    return JSONResponse(
        content={
            "message": "Payment request sent to admin!",
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.post("/request-pay-cheque")
async def request_pay_cheque(
    data: WalletTransactionData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await ForwardToAdmin(
        db,
        PAYMENT_TRANSACTION_CUSTODY,
        current_user,
        ParseObjectID(data.id_transaction),
        method=PaymentMethodData.CHEQUE.value,
    )
    return JSONResponse(
        content={
            "message": "Cheque payment request sent to admin!",
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.post("/accept")
async def accept_wallet_payment(
    data: WalletTransactionData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await DecideAdminRequest(
        db,
        PAYMENT_TRANSACTION_CUSTODY,
        current_user,
        ParseObjectID(data.id_transaction),
        accept=True,
    )
    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.post("/reject")
async def reject_wallet_payment(
    data: WalletTransactionData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await DecideAdminRequest(
        db,
        PAYMENT_TRANSACTION_CUSTODY,
        current_user,
        ParseObjectID(data.id_transaction),
        accept=False,
    )
    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.post("/mark-received")
async def mark_wallet_payment_received(
    data: WalletTransactionData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await MarkReceivedByAdmin(
        db,
        PAYMENT_TRANSACTION_CUSTODY,
        current_user,
        ParseObjectID(data.id_transaction),
    )
    return JSONResponse(
        content={
            "message": "Marked as received!",
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.get("/admin")
async def get_admin_wallet_money(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    transaction_data = await GetListData(
        db.payment_transactions, {}, sort_by="date"
    )
    return JSONResponse(content={"transaction_data": transaction_data})


@router.get("/receipt/{id}")
async def print_payment_receipt(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    receipt_data = await GetReceiptData(db, current_user, ParseObjectID(id))

    pdf_bytes = CreateReceiptPDF(receipt_data)
    file_name = f"receipt-{receipt_data['id_transaction'][-8:]}.pdf"
    return StreamingResponse(
        pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename={file_name}"},
    )
