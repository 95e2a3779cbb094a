from typing import Optional
from sqlalchemy.orm import Session

from furioso.models.user import User as UserModel, UserRole
from furioso.schemas.user import User as UserSchema
from furioso.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_by_email(self, email: str) -> Optional[UserSchema]:
        """이메일로 사용자 조회"""
        return self.get_by_field("email", email.lower())

    def create_user(
        self,
        email: str,
        nickname: str,
        role: UserRole = UserRole.USER,
        commit: bool = True,
    ) -> UserSchema:
        return self.create(
            commit=commit,
            email=email.lower(),
            nickname=nickname,
            role=role.value,
            is_active=True,
        )

