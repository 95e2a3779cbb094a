from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from furioso.core.exceptions import AuthenticationError, AuthorizationError
from furioso.core.security import decode_access_token
from furioso.database.session import get_db
from furioso.models.user import UserRole
from furioso.repositories.user_repository import UserRepository
from furioso.schemas.user import User as UserSchema

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> UserSchema:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials:
        raise _unauthorized("Authentication required")

    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise _unauthorized(str(e))

    user = UserRepository(db).get_by_id(payload.user_id)
    if not user or user.email != payload.sub.lower():
        raise _unauthorized("Invalid or expired token")
    return user


def get_current_active_user(
    current_user: UserSchema = Depends(get_current_user),
) -> UserSchema:
    """활성 사용자만 허용"""
    if not current_user.is_active:
        raise _unauthorized("Inactive user account")
    return current_user


def require_staff(
    current_user: UserSchema = Depends(get_current_active_user),
) -> UserSchema:
    """백오피스 (viewer 이상) 접근용 의존성"""
    if not current_user.is_staff:
        raise AuthorizationError("Staff access required")
    return current_user


def require_admin(
    current_user: UserSchema = Depends(get_current_active_user),
) -> UserSchema:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


def require_role(required_role: UserRole):
    """특정 역할 이상의 권한이 필요한 엔드포인트용 의존성 팩토리"""

    def _require_role(
        current_user: UserSchema = Depends(get_current_active_user),
    ) -> UserSchema:
        if not UserRole.has_permission(current_user.role, required_role):
            raise AuthorizationError(
                f"Role '{required_role.value}' or higher required",
                details={"required": required_role.value},
            )
        return current_user

    return _require_role


def require_any_role(*roles: UserRole):
    """나열된 역할 중 하나를 가진 사용자만 허용 (계층 무관)"""
    allowed = {role.value for role in roles}

    def _require_any_role(
        current_user: UserSchema = Depends(get_current_active_user),
    ) -> UserSchema:
        role = current_user.role.value if isinstance(current_user.role, UserRole) else current_user.role
        if role not in allowed:
            raise AuthorizationError(
                f"One of roles {sorted(allowed)} required",
                details={"allowed": sorted(allowed)},
            )
        return current_user

    return _require_any_role
