import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import config
from .errors import AuthError, ConflictError, ValidationError
from .models import USERNAME_MAX_LENGTH, User

logger = logging.getLogger(__name__)

MIN_CREDENTIAL_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
INVALID_CREDENTIALS = "Invalid username or password."
INVALID_TOKEN = "Invalid or expired token."

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)


# -----------------------------
# Пароли
# -----------------------------
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


# -----------------------------
# JWT
# -----------------------------
def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(hours=config.JWT_EXPIRATION_HOURS)
    payload = {
        "userId": str(user_id),
        "iss": config.JWT_ISSUER,
        "aud": config.JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_token(token: str):
    try:
        return jwt.decode(
            token,
            config.SECRET_KEY,
            algorithms=[config.ALGORITHM],
            audience=config.JWT_AUDIENCE,
            issuer=config.JWT_ISSUER,
            options={"require": ["exp", "iss", "aud", "userId"]},
        )
    except jwt.PyJWTError:
        return None


def authenticate(token: str) -> int:
    """Проверяет подпись, издателя, аудиторию и срок действия; возвращает id пользователя."""
    payload = decode_token(token)
    if payload is None:
        raise AuthError(INVALID_TOKEN)
    try:
        return int(payload["userId"])
    except (TypeError, ValueError):
        raise AuthError(INVALID_TOKEN)


# -----------------------------
# Регистрация и вход
# -----------------------------
def _require(username, password):
    reasons = []
    if username is None:
        reasons.append("Missing 'username' property.")
    if password is None:
        reasons.append("Missing 'password' property.")
    if reasons:
        raise ValidationError("Invalid credentials payload.", reasons)


def register_user(db: Session, username: Optional[str], password: Optional[str]) -> int:
    _require(username, password)

    reasons = []
    if len(username) < MIN_CREDENTIAL_LENGTH:
        reasons.append(f"Username must be at least {MIN_CREDENTIAL_LENGTH} characters long.")
    elif len(username) > USERNAME_MAX_LENGTH:
        reasons.append(f"Username must be at most {USERNAME_MAX_LENGTH} characters long.")
    if len(password) < MIN_CREDENTIAL_LENGTH:
        reasons.append(f"Password must be at least {MIN_CREDENTIAL_LENGTH} characters long.")
    elif len(password) > MAX_PASSWORD_LENGTH:
        reasons.append(f"Password must be at most {MAX_PASSWORD_LENGTH} characters long.")
    if reasons:
        raise ValidationError("Invalid credentials payload.", reasons)

    if db.query(User).filter(User.username == username).first() is not None:
        raise ConflictError("Username already taken.")

    user = User(username=username, hashed_password=get_password_hash(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Параллельная регистрация успела раньше: сработал уникальный индекс
        db.rollback()
        raise ConflictError("Username already taken.")
    db.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return user.id


def _password_matches(password, hashed_password):
    # Такой пароль не мог пройти регистрацию, а passlib отвергает слишком длинные исключением
    if len(password) > MAX_PASSWORD_LENGTH:
        return False
    return verify_password(password, hashed_password)


def login_user(db: Session, username: Optional[str], password: Optional[str]) -> str:
    _require(username, password)

    user = db.query(User).filter(User.username == username).first()
    if user is None or not _password_matches(password, user.hashed_password):
        logger.info("Failed login attempt")
        raise AuthError(INVALID_CREDENTIALS)
    return create_access_token(user.id)
