import logging
from dataclasses import dataclass, field
from typing import List, Optional

import jwt
from fastapi import Depends, Request

from lms_service.config import get_settings
from lms_service.model.enums import UserRole
from lms_service.utils.exceptions import UnauthorizedException, AccessDeniedException

logger = logging.getLogger(__name__)

# Most privileged first; the effective role is the first one held.
_ROLE_PRECEDENCE = [
    UserRole.SUPER_ADMIN.value,
    UserRole.ADMIN.value,
    UserRole.INSTRUCTOR.value,
    UserRole.STUDENT.value,
]


@dataclass
class CurrentUser:
    """Identity extracted from the bearer token"""
    user_id: int
    roles: List[str] = field(default_factory=list)
    email: Optional[str] = None

    @property
    def role(self) -> str:
        for candidate in _ROLE_PRECEDENCE:
            if candidate in self.roles:
                return candidate
        return self.roles[0] if self.roles else UserRole.STUDENT.value

    @property
    def is_admin(self) -> bool:
        return any(r in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value) for r in self.roles)

    def has_any_role(self, *roles: str) -> bool:
        return any(r in self.roles for r in roles)


class AuthService:
    @staticmethod
    def get_current_user(request: Request) -> CurrentUser:
        decoded = AuthService._get_decoded_jwt(request)
        return AuthService._to_current_user(decoded)

    @staticmethod
    def get_optional_user(request: Request) -> Optional[CurrentUser]:
        """Same as get_current_user but anonymous requests yield None."""
        if not request.headers.get("Authorization"):
            return None
        return AuthService.get_current_user(request)

    @staticmethod
    def _to_current_user(decoded: dict) -> CurrentUser:
        raw_user_id = decoded.get("userId", decoded.get("sub"))
        if raw_user_id is None:
            raise UnauthorizedException("Invalid token")
        try:
            user_id = int(raw_user_id)
        except (TypeError, ValueError):
            raise UnauthorizedException("Invalid token subject")

        roles = decoded.get("roles")
        if roles is None:
            roles = [decoded["role"]] if decoded.get("role") else []
        elif isinstance(roles, str):
            roles = [roles]

        return CurrentUser(
            user_id=user_id,
            roles=[str(r).lower() for r in roles],
            email=decoded.get("email"),
        )

    @staticmethod
    def _get_decoded_jwt(request: Request) -> dict:
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise UnauthorizedException("Authorization header missing")
        if not auth_header.startswith("Bearer "):
            raise UnauthorizedException("Invalid Authorization header format")
        token = auth_header.split(" ", 1)[1]

        settings = get_settings()
        try:
            if settings.jwt_secret:
                decoded = jwt.decode(
                    token,
                    settings.jwt_secret,
                    algorithms=[settings.jwt_algorithm],
                )
            else:
                # no secret configured, signature is not checked
                decoded = jwt.decode(token, options={"verify_signature": False})
        except jwt.ExpiredSignatureError:
            raise UnauthorizedException("Token expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {e}")
            raise UnauthorizedException("Invalid token")
        return decoded


def require_roles(*roles: str):
    """
    Dependency factory guarding a route by role.

    Example:
        @router.get("/pending")
        async def pending(user: CurrentUser = Depends(require_roles("instructor", "admin"))):
            ...
    """
    allowed = {r.lower() for r in roles}
    # super_admin passes every admin guard
    if UserRole.ADMIN.value in allowed:
        allowed.add(UserRole.SUPER_ADMIN.value)

    def _guard(user: CurrentUser = Depends(AuthService.get_current_user)) -> CurrentUser:
        if not user.has_any_role(*allowed):
            raise AccessDeniedException("Insufficient role")
        return user

    return _guard
