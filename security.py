"""
Admin authentication: bcrypt password checks, signed expiring tokens and the
email allow-list. Only addresses on the allow-list that also have a row in
`admin_users` can obtain or keep a token.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException
from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext

from config import settings
from schemas import AdminUser
from storage import Storage, get_storage

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        # empty or unrecognised hash in the table
        logger.warning("Stored password hash could not be read")
        return False


def is_authorized_email(email: Optional[str]) -> bool:
    return bool(email) and email.strip().lower() in settings.admin_emails


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def public_user(admin: AdminUser) -> dict:
    return {"id": admin.id, "email": admin.email}


async def authenticate_admin(storage: Storage, email: str, password: str) -> AdminUser:
    """Return the admin for valid credentials or raise a 401."""
    if not is_authorized_email(email):
        logger.info("Admin login refused for non-allow-listed address")
        raise HTTPException(status_code=401, detail="Unauthorized email")

    admin = await storage.admin_users.get_by_email(email)
    if admin is None:
        logger.info("Admin login for %s: no admin row", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not await run_in_threadpool(verify_password, password, admin.password_hash):
        logger.info("Admin login for %s: wrong password", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return admin


async def verify_admin_token(storage: Storage, token: Any) -> AdminUser:
    """Decode a token and check it still names a current, allow-listed admin."""
    if not token:
        raise HTTPException(status_code=401, detail="No token provided")
    if not isinstance(token, str):
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    email = payload.get("email")
    if not isinstance(email, str) or not is_authorized_email(email):
        raise HTTPException(status_code=401, detail="Unauthorized")

    admin = await storage.admin_users.get_by_email(email)
    if admin is None or admin.id != user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return admin


# Auth dependency (manual bearer parsing)

def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip()


async def get_current_admin(token: Optional[str] = Depends(get_bearer_token),
                            storage: Storage = Depends(get_storage)) -> AdminUser:
    return await verify_admin_token(storage, token)
