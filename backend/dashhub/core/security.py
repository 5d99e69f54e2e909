from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from dashhub.core.config import settings
from dashhub.core.enums import Role

# JWT Configuration
ALGORITHM = "HS256"

_pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return _pwd_context.hash(password)


def create_access_token(
    subject: Any,
    role: Role,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token carrying the user id and role.

    Args:
        subject: The subject to encode (typically user id)
        role: Role resolved at login time
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # role 仅供客户端展示；鉴权时以数据库中的角色为准（见 api/deps.get_current_identity）
    to_encode = {"exp": expire, "sub": str(subject), "role": Role(role).value}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify JWT token and return its claims.

    Returns:
        Claims dict if the signature and expiry are valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("sub") is None:
        return None
    return payload
