from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from app.core.errors import AuthenticationError, AuthorizationError
from app.core.security import ROLES, decode_token

bearer = HTTPBearer(auto_error=False)

INTERNAL_ROLES = ("admin", "service")


@dataclass
class Principal:
    """Decoded token claims. The kernel trusts them and does not look the user up."""
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_current_principal(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Principal:
    if not creds:
        raise AuthenticationError("Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise AuthenticationError("Invalid token") from None
    user_id = payload.get("sub")
    role = payload.get("role", "traveler")
    if not user_id or payload.get("type") != "access" or role not in ROLES:
        raise AuthenticationError("Invalid token")
    return Principal(user_id=user_id, role=role)


def require_roles(*roles: str):
    def _guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise AuthorizationError("Forbidden")
        return principal
    return _guard


def ensure_self_or_admin(principal: Principal, user_id: str) -> None:
    if principal.user_id != user_id and not principal.is_admin:
        raise AuthorizationError("You can only access your own resources")
