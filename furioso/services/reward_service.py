"""
코인 지급 서비스 - 가입 보너스, 설문 보상, 관리자 조정

지급 규칙(금액, 사유, 멱등 키)은 여기서 결정하고,
실제 잔액 반영은 LedgerService.apply_transaction 에 위임합니다.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from furioso.config import Settings
from furioso.core.exceptions import ValidationError
from furioso.models.audit import AuditAction, AuditEntityType
from furioso.models.coins import CoinTransactionType, RelatedEntityType
from furioso.schemas.coins import (
    AdminAdjustmentRequest,
    LedgerApplyResult,
    RelatedEntity,
    SurveyRewardRequest,
)
from furioso.schemas.user import User as UserSchema
from furioso.services.audit_service import AuditService
from furioso.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class CoinRewardService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.ledger = LedgerService(db, settings)
        self.audit_service = AuditService(db)

    def grant_signup_bonus(self, user_id: int, commit: bool = True) -> Optional[LedgerApplyResult]:
        """신규 가입 보너스 지급 (사용자당 1회)"""
        amount = self.settings.SIGNUP_BONUS_COINS
        if amount <= 0:
            logger.info(f"Signup bonus disabled, skipping user {user_id}")
            return None

        return self.ledger.apply_transaction(
            user_id=user_id,
            amount=amount,
            transaction_type=CoinTransactionType.SIGNUP_BONUS.value,
            description="Welcome bonus",
            idempotency_key=f"signup_bonus:{user_id}",
            commit=commit,
        )

    def grant_survey_reward(self, request: SurveyRewardRequest) -> LedgerApplyResult:
        """설문 완료 보상 - 같은 설문은 사용자당 한 번만 지급"""
        if request.reward <= 0:
            raise ValidationError("Survey reward must be positive")

        result = self.ledger.apply_transaction(
            user_id=request.user_id,
            amount=request.reward,
            transaction_type=CoinTransactionType.SURVEY_REWARD.value,
            description=f"Survey completed: {request.survey_title}",
            related_entity=RelatedEntity.of(RelatedEntityType.SURVEY, request.survey_id),
            idempotency_key=f"survey_reward:{request.user_id}:{request.survey_id}",
        )
        if result.replayed:
            logger.info(
                f"Survey {request.survey_id} already rewarded for user {request.user_id}"
            )
        return result

    def admin_adjust(
        self,
        admin: UserSchema,
        request: AdminAdjustmentRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LedgerApplyResult:
        """관리자 수동 조정 - 감사 로그와 원장 기록을 하나의 단위로 커밋"""
        try:
            audit_entry = self.audit_service.log_action(
                admin_id=admin.id,
                admin_identity=admin.email,
                action=AuditAction.CREATE,
                entity_type=AuditEntityType.USER,
                entity_id=request.user_id,
                details={
                    "target_user_id": request.user_id,
                    "amount": request.amount,
                    "reason": request.reason,
                },
                ip_address=ip_address,
                user_agent=user_agent,
                commit=False,
            )
            result = self.ledger.apply_transaction(
                user_id=request.user_id,
                amount=request.amount,
                transaction_type=CoinTransactionType.ADMIN_ADJUSTMENT.value,
                description=f"Admin adjustment: {request.reason}",
                related_entity=RelatedEntity.of(RelatedEntityType.AUDIT_LOG, audit_entry.id),
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Admin {admin.id} adjusted user {request.user_id} by {request.amount:+d}"
        )
        return result
