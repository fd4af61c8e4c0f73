"""Authentication and authorization utilities and routes."""
from datetime import datetime, timedelta
from typing import Dict, Optional

import bcrypt
import secrets
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..shared.utils import is_valid_username
from . import schemas
from .config import LOCKOUT_MINUTES, MAX_FAILED_LOGINS, TOKEN_EXPIRY_MINUTES
from .database import get_db
from .logging_config import configure_logging
from .models import User

router = APIRouter(prefix="/auth", tags=["auth"])
logger = configure_logging()

# In-memory token store: token -> {"username": str, "expires": datetime}
TOKEN_STORE: Dict[str, Dict[str, datetime | str]] = {}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def issue_token(username: str) -> str:
    token = secrets.token_urlsafe(32)
    TOKEN_STORE[token] = {"username": username, "expires": datetime.utcnow() + timedelta(minutes=TOKEN_EXPIRY_MINUTES)}
    return token


@router.post("/register")
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    if not is_valid_username(payload.username):
        raise HTTPException(status_code=400, detail="Invalid username")
    if not payload.password:
        raise HTTPException(status_code=400, detail="Password is required")
    existing = db.query(User).filter(User.username == payload.username).first()
    if existing:
        logger.info("REGISTER_FAIL username=%s reason=exists", payload.username)
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(username=payload.username, password_hash=hash_password(payload.password))
    db.add(user)
    db.commit()
    logger.info("REGISTER_SUCCESS username=%s", payload.username)
    return {"message": "User registered successfully"}


@router.post("/login", response_model=schemas.LoginResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user: Optional[User] = db.query(User).filter(User.username == payload.username).first()
    if not user:
        logger.info("LOGIN_FAIL username=%s reason=not_found", payload.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.lock_until and user.lock_until > datetime.utcnow():
        logger.warning("ACCOUNT_BLOCKED username=%s locked_until=%s", payload.username, user.lock_until)
        raise HTTPException(status_code=403, detail=f"Account locked until {user.lock_until}")

    if not bcrypt.checkpw(payload.password.encode(), user.password_hash.encode()):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= MAX_FAILED_LOGINS:
            user.lock_until = datetime.utcnow() + timedelta(minutes=LOCKOUT_MINUTES)
            logger.warning("ACCOUNT_BLOCKED username=%s locked_until=%s", payload.username, user.lock_until)
        db.commit()
        logger.info("LOGIN_FAIL username=%s reason=bad_password", payload.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.failed_login_attempts = 0
    user.lock_until = None
    db.commit()

    token = issue_token(user.username)
    logger.info("LOGIN_SUCCESS username=%s", user.username)
    return schemas.LoginResponse(token=token, user=schemas.UserOut.model_validate(user))


def resolve_token(token: str | None) -> str:
    """Return the username a bearer token was issued to."""
    if not token:
        logger.warning("UNAUTHORIZED_ACCESS reason=missing_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    token_data = TOKEN_STORE.get(token)
    if not token_data:
        logger.warning("UNAUTHORIZED_ACCESS reason=unknown_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if token_data["expires"] < datetime.utcnow():
        logger.warning("UNAUTHORIZED_ACCESS reason=expired_token")
        TOKEN_STORE.pop(token, None)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    return str(token_data["username"])


def _validate_token(header: str | None) -> str:
    if not header or not header.startswith("Bearer "):
        logger.warning("UNAUTHORIZED_ACCESS reason=missing_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return resolve_token(header.split(" ", 1)[1])


def get_current_username(authorization: str | None = Header(default=None)) -> str:
    """FastAPI dependency returning the authenticated user's username."""
    return _validate_token(authorization)
