from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

from furioso.models.user import UserRole


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    nickname: str
    created_at: datetime
    is_active: bool = True
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)

    @property
    def is_staff(self) -> bool:
        """백오피스 접근 가능 여부"""
        return UserRole.is_staff(self.role)


class UserCreate(BaseModel):
    email: EmailStr
    nickname: str = Field(..., min_length=2, max_length=50)

    @field_validator("nickname")
    @classmethod
    def nickname_must_not_be_empty(cls, v: str) -> str:
        if v.strip() == "":
            raise ValueError("Nickname cannot be empty")
        return v.strip()


class UserRegistrationResponse(BaseModel):
    """가입 결과 - 사용자 정보와 가입 보너스 반영 후 잔액"""

    user: User
    coin_balance: int
    access_token: str
    token_type: str = "bearer"
