from enum import Enum
from typing import Union

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from furioso.models.base import BaseModel, BigIntId


class UserRole(str, Enum):
    """사용자 역할 정의"""

    USER = "user"  # 일반 팬
    VIEWER = "viewer"  # 백오피스 조회 전용
    EDITOR = "editor"  # 콘텐츠/상점 운영
    FINANCE = "finance"  # 코인 조정 담당
    ADMIN = "admin"  # 관리자
    SUPER_ADMIN = "super_admin"  # 최고 관리자

    @classmethod
    def get_hierarchy_level(cls, role: Union[str, "UserRole"]) -> int:
        """역할의 계층 레벨을 반환 (숫자가 높을수록 높은 권한)"""
        if isinstance(role, cls):
            role = role.value

        hierarchy = {
            cls.USER.value: 1,
            cls.VIEWER.value: 2,
            cls.EDITOR.value: 3,
            cls.FINANCE.value: 3,
            cls.ADMIN.value: 4,
            cls.SUPER_ADMIN.value: 5,
        }
        return hierarchy.get(str(role), 0)

    @classmethod
    def has_permission(
        cls, user_role: Union[str, "UserRole"], required_role: Union[str, "UserRole"]
    ) -> bool:
        """사용자 역할이 요구되는 역할 이상인지 확인"""
        return cls.get_hierarchy_level(user_role) >= cls.get_hierarchy_level(
            required_role
        )

    @classmethod
    def is_admin(cls, role: Union[str, "UserRole"]) -> bool:
        if isinstance(role, cls):
            role = role.value
        return role in [cls.ADMIN.value, cls.SUPER_ADMIN.value]

    @classmethod
    def is_staff(cls, role: Union[str, "UserRole"]) -> bool:
        """백오피스 접근 가능 여부 (일반 팬 제외)"""
        return cls.get_hierarchy_level(role) >= cls.get_hierarchy_level(cls.VIEWER)


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_email", "email"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER.value, nullable=False
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(str(self.role))

    @property
    def is_staff(self) -> bool:
        return UserRole.is_staff(str(self.role))
