import pytest
from sqlalchemy import select

from furioso.config import settings
from furioso.core.exceptions import InsufficientFundsError, UserNotFoundError
from furioso.models import AuditLog, UserRole
from furioso.schemas.coins import AdminAdjustmentRequest, SurveyRewardRequest
from furioso.services.reward_service import CoinRewardService


@pytest.fixture
def reward_service(db_session):
    return CoinRewardService(db_session, settings)


class TestCoinRewardService:
    def test_signup_bonus_is_granted_once(self, reward_service, make_user):
        user = make_user()

        first = reward_service.grant_signup_bonus(user.id)
        second = reward_service.grant_signup_bonus(user.id)

        assert first.transaction.amount == settings.SIGNUP_BONUS_COINS
        assert first.transaction.transaction_type == "signup_bonus"
        assert first.transaction.idempotency_key == f"signup_bonus:{user.id}"
        assert second.replayed is True
        assert reward_service.ledger.get_balance(user.id).balance == settings.SIGNUP_BONUS_COINS

    def test_signup_bonus_disabled(self, db_session, make_user):
        user = make_user()
        disabled = settings.model_copy(update={"SIGNUP_BONUS_COINS": 0})

        assert CoinRewardService(db_session, disabled).grant_signup_bonus(user.id) is None

    def test_survey_reward_pays_once_per_survey(self, reward_service, make_user):
        user = make_user()
        request = SurveyRewardRequest(
            user_id=user.id, survey_id=12, survey_title="Season review", reward=40
        )

        result = reward_service.grant_survey_reward(request)
        replay = reward_service.grant_survey_reward(request)
        other = reward_service.grant_survey_reward(
            request.model_copy(update={"survey_id": 13})
        )

        assert result.transaction.related_entity_type == "survey"
        assert result.transaction.related_entity_id == 12
        assert result.transaction.description == "Survey completed: Season review"
        assert replay.replayed is True
        assert other.replayed is False
        assert other.balance.balance == 80

    def test_admin_adjust_links_audit_entry(self, reward_service, make_user, as_schema, db_session):
        admin = as_schema(make_user(role=UserRole.FINANCE))
        user = make_user()

        result = reward_service.admin_adjust(
            admin,
            AdminAdjustmentRequest(user_id=user.id, amount=250, reason="Tournament prize"),
            ip_address="10.0.0.1",
        )

        audit = db_session.execute(select(AuditLog)).scalar_one()
        assert audit.admin_id == admin.id
        assert audit.action == "create"
        assert audit.entity_type == "user"
        assert audit.entity_id == str(user.id)
        assert audit.details["amount"] == 250
        assert result.transaction.transaction_type == "admin_adjustment"
        assert result.transaction.related_entity_type == "audit_log"
        assert result.transaction.related_entity_id == audit.id
        assert result.balance.balance == 250

    def test_rejected_adjustment_leaves_no_audit_entry(self, reward_service, make_user, as_schema, db_session):
        admin = as_schema(make_user(role=UserRole.ADMIN))
        user = make_user()

        with pytest.raises(InsufficientFundsError):
            reward_service.admin_adjust(
                admin, AdminAdjustmentRequest(user_id=user.id, amount=-10, reason="Penalty")
            )

        assert db_session.execute(select(AuditLog)).scalars().all() == []

    def test_adjust_unknown_user(self, reward_service, make_user, as_schema, db_session):
        admin = as_schema(make_user(role=UserRole.ADMIN))

        with pytest.raises(UserNotFoundError):
            reward_service.admin_adjust(
                admin, AdminAdjustmentRequest(user_id=9999, amount=10, reason="Typo")
            )

        assert db_session.execute(select(AuditLog)).scalars().all() == []
