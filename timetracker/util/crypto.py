import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from ..core.config import get_settings

def fernet_key() -> bytes:
    # 32 bytes of SHA256(APP_SECRET), urlsafe base64 as Fernet expects
    digest = hashlib.sha256(get_settings().app_secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)

def encrypt(text: str) -> str:
    return Fernet(fernet_key()).encrypt(text.encode()).decode()

def decrypt(token: str) -> str | None:
    """Decrypt a stored secret; None when APP_SECRET changed since it was written."""
    if not token:
        return None
    try:
        return Fernet(fernet_key()).decrypt(token.encode()).decode()
    except InvalidToken:
        return None
