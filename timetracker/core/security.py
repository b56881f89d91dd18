from itsdangerous import URLSafeTimedSerializer, BadSignature
from passlib.context import CryptContext
from typing import Optional
from .config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

def get_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().app_secret, salt="timetracker-session")

def sign_session(data: dict) -> str:
    return get_serializer().dumps(data)

def verify_session(token: str) -> Optional[dict]:
    """Payload of a session token, or None when it is forged or older than SESSION_MAX_AGE."""
    try:
        return get_serializer().loads(token, max_age=get_settings().session_max_age)
    except BadSignature:
        return None
