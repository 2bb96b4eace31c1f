# alea/routes/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..models import User
from ..schemas import UserCreate, UserLogin
from ..services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(Exception):
    pass


class AuthUser(BaseModel):
    """Identity taken from a verified bearer token"""
    user_id: str
    username: str


def create_access_token(settings: Settings, user: User) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.token_ttl_minutes)
    claims = {"sub": str(user.id), "username": user.username, "exp": expires}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.token_algorithm)


def verify_token(settings: Settings, token: Optional[str]) -> AuthUser:
    if not token:
        raise AuthError("You must be logged in.")
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise AuthError("Invalid authentication token.")
    if not claims.get("sub"):
        raise AuthError("Invalid authentication token.")
    return AuthUser(user_id=claims["sub"], username=claims.get("username", ""))


def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> AuthUser:
    """Every state-changing route derives the user from the token, never the body."""
    try:
        return verify_token(services.settings, credentials.credentials if credentials else None)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.post("/register")
def register_user(data: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.username == data.username).first():
        return JSONResponse({"error": "Username already taken"}, status_code=409)

    user = User(
        username=data.username,
        password_hash=pwd_context.hash(data.password),
        role="User",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return {"message": "User registered", "user_id": user.id}


@router.post("/login")
def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    user = db.query(User).filter(User.username == credentials.username).first()
    if not user or not pwd_context.verify(credentials.password, user.password_hash):
        return JSONResponse({"error": "Invalid credentials"}, status_code=401)

    token = create_access_token(services.settings, user)
    return {"message": "Logged in", "token": token, "token_type": "bearer", "role": user.role}
