import time

from jose import jwt, JWTError
from werkzeug.security import check_password_hash, generate_password_hash

from ..config import settings


def create_jwt(payload: dict, ttl: int | None = None) -> str:
    exp = int(time.time()) + (ttl if ttl is not None else settings.JWT_TTL_SEC)
    return jwt.encode({**payload, "exp": exp}, settings.SECRET_KEY, algorithm=settings.JWT_ALG)


def decode_jwt(token: str):
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALG])
    except JWTError:
        return None


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, stored: str) -> bool:
    if not stored:
        return False
    return check_password_hash(stored, password)
