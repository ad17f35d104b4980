import os
import logging
from contextlib import asynccontextmanager
import motor.motor_asyncio
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError
from creditsales.modules.exceptions import TransactionConflict
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class DataBase:
    client: AsyncIOMotorClient = None


db = DataBase()


async def ConnectToMongoDB():
    db.client = motor.motor_asyncio.AsyncIOMotorClient(os.environ["DB_URI"])
    await CreateIndexes(await GetCreditSalesDatabase())


async def DisconnectMongoDB():
    db.client.close()


async def GetCreditSalesDatabase() -> AsyncIOMotorClient:
    return db.client[os.environ["DB_NAME"]]


async def CreateIndexes(database):
    await database.users.create_index("email", unique=True)
    await database.customers.create_index("email", unique=True)
    await database.customers.create_index("id_user", unique=True)
    await database.orders.create_index(
        [("id_customer", ASCENDING), ("payment", ASCENDING), ("order_date", ASCENDING)]
    )
    await database.orders.create_index([("assigned_to", ASCENDING), ("assigned_at", DESCENDING)])
    await database.bills.create_index([("id_customer", ASCENDING), ("cycle_end", DESCENDING)])
    await database.payment_requests.create_index(
        [("id_recipient", ASCENDING), ("created_at", DESCENDING)]
    )
    await database.bill_transactions.create_index(
        [("id_recipient", ASCENDING), ("created_at", DESCENDING)]
    )
    # one open forward per transaction
    await database.bill_admin_requests.create_index(
        "id_transaction",
        unique=True,
        partialFilterExpression={"status": "pending"},
    )
    await database.payment_transactions.create_index(
        [("id_delivery_man", ASCENDING), ("method", ASCENDING), ("date", DESCENDING)]
    )
    logger.info("MongoDB indexes ensured on %s", database.name)


@asynccontextmanager
async def StartTransaction(database):
    """Run the enclosed writes as one multi-document transaction.

    Yields the client session; every CRUD call inside the block must pass it
    as `session`. Leaving the block normally commits, any exception aborts.
    A write conflict with another transaction is raised as
    `TransactionConflict`; nothing of the block was committed then.
    Requires a replica set or sharded deployment.
    """
    try:
        async with await database.client.start_session() as session:
            async with session.start_transaction():
                yield session
    except PyMongoError as exc:
        if not exc.has_error_label("TransientTransactionError"):
            raise
        logger.warning("transaction aborted by a concurrent writer: %s", exc)
        raise TransactionConflict(
            "Data was changed by another operation, try again!"
        ) from exc
