import pytest

from furioso.config import settings
from furioso.core.exceptions import ConflictError, UserNotFoundError
from furioso.core.security import decode_access_token
from furioso.schemas.user import UserCreate
from furioso.services.user_service import UserService


@pytest.fixture
def user_service(db_session):
    return UserService(db_session, settings)


class TestUserService:
    def test_register_grants_signup_bonus(self, user_service):
        result = user_service.register_user(
            UserCreate(email="New.Fan@Example.com", nickname="newfan")
        )

        assert result.user.email == "new.fan@example.com"
        assert result.coin_balance == settings.SIGNUP_BONUS_COINS
        history = user_service.reward_service.ledger.get_history(result.user.id)
        assert [e.transaction_type for e in history] == ["signup_bonus"]
        assert decode_access_token(result.access_token).user_id == result.user.id

    def test_duplicate_email(self, user_service, make_user):
        make_user(email="taken@example.com")

        with pytest.raises(ConflictError):
            user_service.register_user(UserCreate(email="taken@example.com", nickname="again"))

    def test_get_user(self, user_service, make_user):
        user = make_user()
        assert user_service.get_user(user.id).email == user.email

        with pytest.raises(UserNotFoundError):
            user_service.get_user(123456)
