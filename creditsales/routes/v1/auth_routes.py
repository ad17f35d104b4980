from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi.responses import JSONResponse
from creditsales.modules.crud_operations import GetOneData, JsonFormatter
from creditsales.models.auth import LoginData, Token
from creditsales.models.customers import CustomerProjections
from creditsales.models.users import UserData, UserRole
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import ObjectIDValidator
from creditsales.modules.response_message import (
    FORBIDDEN_ACCESS_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
)
from fastapi import Depends, HTTPException, status, APIRouter
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt, ExpiredSignatureError
from passlib.context import CryptContext
import logging
import os
from dotenv import load_dotenv

load_dotenv()

SECRET_KEY = os.environ["SECRET_KEY"]
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

logger = logging.getLogger(__name__)


async def VerifyPassword(plain_password, hashed_password):
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning("password verification failed: %s", e)
        return False


async def AuthenticateUser(email: str, password: str, db: AsyncIOMotorClient):
    user_data = await GetOneData(db.users, {"email": email})
    if not user_data:
        return False

    is_password_verified = await VerifyPassword(password, user_data["password"])
    if not is_password_verified:
        return False

    return user_data


def CreateAccessToken(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


async def GetCurrentUser(
    token: str = Depends(oauth2_scheme),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        id: str = payload.get("sub")
        if id is None:
            raise credentials_exception
    except ExpiredSignatureError:
        credentials_exception.detail = "Token has expired"
        raise credentials_exception
    except JWTError:
        credentials_exception.detail = "Token is invalid"
        raise credentials_exception

    id_user = ObjectIDValidator(id)
    if not id_user:
        raise credentials_exception

    user = await GetOneData(db.users, {"_id": id_user}, {"password": 0})
    if user is None:
        raise credentials_exception
    return UserData(**user)


def CheckRole(current_user: UserData, roles: List[UserRole]):
    if current_user.role not in roles:
        raise HTTPException(
            status_code=403, detail={"message": FORBIDDEN_ACCESS_MESSAGE}
        )


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token, response_model_by_alias=False)
async def login_for_access_token(
    data: LoginData,
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    payload = data.dict(exclude_unset=True)
    user = await AuthenticateUser(payload["email"], payload["password"], db)

    if not user:
        logger.warning("failed login for %s", payload["email"])
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": INVALID_CREDENTIALS_MESSAGE},
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = {
        "sub": user["_id"],
        "role": user["role"],
        "email": user["email"],
    }
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = CreateAccessToken(data=payload, expires_delta=access_token_expires)
    del user["password"]

    customer_data = None
    if user["role"] == UserRole.CUSTOMER.value:
        customer_data = await GetOneData(
            db.customers,
            {"id_user": ObjectIDValidator(user["_id"])},
            CustomerProjections,
        )

    auth_data: Token = {
        "access_token": access_token,
        "token_type": "Bearer",
        "user_data": user,
        "customer_data": customer_data,
    }

    logger.info("user %s logged in as %s", user["_id"], user["role"])
    return JSONResponse(content={"auth_data": JsonFormatter(auth_data)})


@router.get("/verify")
async def verify_token(current_user: UserData = Depends(GetCurrentUser)):
    return JSONResponse(
        status_code=200, content={"status": "Ok!", "uid": current_user.id}
    )
