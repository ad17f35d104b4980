"""Error kinds raised by the credit, billing and settlement core.

Every core operation either commits all of its writes or raises one of these
before any write became visible. `status_code` is the stable HTTP class the
API answers with; `retryable` tells the caller whether changing the input can
help.
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CreditSalesError(Exception):
    status_code = 500
    code = "ERROR"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(CreditSalesError):
    status_code = 404
    code = "NOT_FOUND"


class Forbidden(CreditSalesError):
    status_code = 403
    code = "FORBIDDEN"


class InvalidState(CreditSalesError):
    status_code = 409
    code = "INVALID_STATE"


class NoEligibleOrders(InvalidState):
    code = "NO_ELIGIBLE_ORDERS"


class ConcurrentUpdate(InvalidState):
    code = "CONCURRENT_UPDATE"


class TransactionConflict(ConcurrentUpdate):
    code = "TRANSACTION_CONFLICT"


class InsufficientResource(CreditSalesError):
    status_code = 402
    code = "INSUFFICIENT_RESOURCE"
    retryable = True


class InsufficientCredit(InsufficientResource):
    code = "INSUFFICIENT_CREDIT"


class InsufficientStock(InsufficientResource):
    code = "INSUFFICIENT_STOCK"


class InvalidAmount(CreditSalesError):
    status_code = 400
    code = "INVALID_AMOUNT"
    retryable = True


class ValidationError(CreditSalesError):
    status_code = 422
    code = "VALIDATION_ERROR"
    retryable = True


async def CreditSalesErrorHandler(request: Request, exc: CreditSalesError):
    logger.warning(
        "%s %s refused: %s (%s)", request.method, request.url.path, exc.message, exc.code
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": {
                "message": exc.message,
                "code": exc.code,
                "retryable": exc.retryable,
            }
        },
    )
