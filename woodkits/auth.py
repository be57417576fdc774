"""
Admin authentication: password hashing, JWT issue/verify, FastAPI dependency.

Libraries: python-jose[cryptography] for JWT, passlib[bcrypt] for passwords.
Sessions are stateless bearer tokens; nothing about a login is held in process.
"""

import logging
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from . import models

logger = logging.getLogger(__name__)

# --- Password hashing ---

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# --- JWT tokens ---

security = HTTPBearer(auto_error=False)


def _get_jwt_secret() -> str:
    """Get JWT secret, failing loudly if not configured."""
    secret = settings.JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT_SECRET not configured. Set it in environment variables",
        )
    return secret


def create_admin_token(admin: models.AdminUser) -> tuple:
    """Returns (token, expires_at)."""
    expire = datetime.utcnow() + timedelta(hours=settings.ADMIN_SESSION_HOURS)
    payload = {
        "sub": str(admin.id),
        "username": admin.username,
        "role": "admin",
        "exp": expire,
    }
    token = jwt.encode(payload, _get_jwt_secret(), algorithm=settings.JWT_ALGORITHM)
    return token, expire


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Raises HTTPException on failure."""
    try:
        return jwt.decode(token, _get_jwt_secret(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )


def authenticate_admin(db: Session, username: str, password: str):
    """Returns the AdminUser on success, None otherwise."""
    admin = db.query(models.AdminUser).filter(models.AdminUser.username == username).first()
    if not admin or not verify_password(password, admin.password_hash):
        logger.warning("Failed admin login for '%s'", username)
        return None
    admin.last_login_at = datetime.utcnow()
    db.commit()
    return admin


def ensure_admin_user(db: Session, username: str, password: str) -> models.AdminUser:
    """Create the admin account if missing. Existing passwords are left alone."""
    admin = db.query(models.AdminUser).filter(models.AdminUser.username == username).first()
    if admin:
        return admin
    admin = models.AdminUser(username=username, password_hash=hash_password(password))
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Seeded admin user '%s'", username)
    return admin


# --- FastAPI dependency: require an admin token ---

def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> models.AdminUser:
    """FastAPI dependency. Validates the bearer token and returns the AdminUser."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )

    payload = decode_token(credentials.credentials)

    if payload.get("role") != "admin" or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )

    admin = db.query(models.AdminUser).filter(models.AdminUser.id == int(payload["sub"])).first()
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )

    return admin
