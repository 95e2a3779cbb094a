import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from furioso.config import Settings
from furioso.core.exceptions import ConflictError, UserNotFoundError
from furioso.core.security import create_user_token
from furioso.repositories.user_repository import UserRepository
from furioso.schemas.user import User as UserSchema, UserCreate, UserRegistrationResponse
from furioso.services.reward_service import CoinRewardService

logger = logging.getLogger(__name__)


class UserService:
    """사용자 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.reward_service = CoinRewardService(db, settings)

    def get_user(self, user_id: int) -> UserSchema:
        """사용자 ID로 조회"""
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return user

    def register_user(self, request: UserCreate) -> UserRegistrationResponse:
        """회원 가입 + 가입 보너스 지급 (한 트랜잭션)"""
        if self.user_repo.get_by_email(request.email):
            raise ConflictError("Email already registered")

        try:
            user = self.user_repo.create_user(
                email=request.email, nickname=request.nickname, commit=False
            )
            bonus = self.reward_service.grant_signup_bonus(user.id, commit=False)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered")
        except Exception:
            self.db.rollback()
            raise

        balance = bonus.balance.balance if bonus else 0
        logger.info(f"Registered user {user.id} with {balance} coins")
        return UserRegistrationResponse(
            user=user,
            coin_balance=balance,
            access_token=create_user_token(user.id, user.email),
        )
