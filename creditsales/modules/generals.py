from datetime import datetime
from bson import ObjectId
from fastapi import HTTPException
import math
import pytz
import os
import secrets
import string
from creditsales.modules.exceptions import InvalidAmount
from creditsales.modules.response_message import OBJECT_ID_NOT_VALID_MESSAGE
from dotenv import load_dotenv

load_dotenv()

TIMEZONE = os.getenv("TIMEZONE", "Asia/Kolkata")


def GenerateRandomString(length: int = 10):
    alphabet = string.ascii_letters + string.digits
    random_string = "".join(secrets.choice(alphabet) for _ in range(length))
    return random_string


def GetCurrentDateTime():
    to_zone = pytz.timezone(TIMEZONE)
    current_time = datetime.now(to_zone).replace(tzinfo=None)

    return current_time


def DateTimeFormatter(date: datetime):
    if date is None:
        return "-"
    if isinstance(date, str):
        try:
            date = datetime.strptime(date, "%Y-%m-%d %H:%M:%S.%f")
        except ValueError:
            date = datetime.strptime(date, "%Y-%m-%d %H:%M:%S")
    return date.strftime("%d %B %Y %H:%M")


def DateFormatter(date: datetime):
    if date is None:
        return "-"
    return date.strftime("%d/%m/%Y")


def ThousandSeparator(number):
    return f"{number:,.2f}"


def RoundAmount(amount) -> float:
    amount = float(amount)
    # NaN and infinity slip past every ordering check
    if not math.isfinite(amount):
        raise InvalidAmount("Amount must be a finite number!")
    return round(amount, 2)


def ObjectIDValidator(id: str):
    try:
        object_id = ObjectId(id)
        return object_id
    except Exception:
        return False


def ParseObjectID(id: str) -> ObjectId:
    object_id = ObjectIDValidator(id)
    if not object_id:
        raise HTTPException(
            status_code=400, detail={"message": OBJECT_ID_NOT_VALID_MESSAGE}
        )
    return object_id
