import asyncio
import logging
import os
from creditsales.models.users import UserRole, UserStatusData
from creditsales.modules.crud_operations import CreateOneData, GetOneData
from creditsales.modules.database import (
    ConnectToMongoDB,
    DisconnectMongoDB,
    GetCreditSalesDatabase,
)
from creditsales.modules.generals import GetCurrentDateTime
from passlib.context import CryptContext
from dotenv import load_dotenv

load_dotenv()

ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

logger = logging.getLogger("create_admin")


async def main():
    await ConnectToMongoDB()
    db = await GetCreditSalesDatabase()

    exist_user = await GetOneData(db.users, {"email": ADMIN_EMAIL})
    if exist_user:
        logger.info("user %s already exists as %s", ADMIN_EMAIL, exist_user["role"])
    else:
        result = await CreateOneData(
            db.users,
            {
                "name": ADMIN_NAME,
                "email": ADMIN_EMAIL,
                "password": pwd_context.hash(ADMIN_PASSWORD),
                "role": UserRole.ADMIN.value,
                "status": UserStatusData.ACTIVE.value,
                "created_at": GetCurrentDateTime(),
            },
        )
        logger.info("admin %s created with id %s", ADMIN_EMAIL, result.inserted_id)

    await DisconnectMongoDB()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
