"""
코인 시스템 데이터 모델

- coin_balances: 사용자별 현재 잔액 + 누적 획득/사용량 (사용자당 1행)
- coin_transactions: 모든 코인 변동을 기록하는 추가 전용(append-only) 원장

잔액 행은 LedgerService만 변경하며, 원장 행은 생성 후 수정/삭제되지 않습니다.
"""

from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from furioso.models.base import Base, BigIntId, CreatedAtMixin


class CoinTransactionType(str, Enum):
    """알려진 거래 사유 태그 (원장 컬럼은 자유 문자열)"""

    SIGNUP_BONUS = "signup_bonus"
    SURVEY_REWARD = "survey_reward"
    REDEMPTION = "redemption"
    REDEMPTION_REFUND = "redemption_refund"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class RelatedEntityType(str, Enum):
    """거래를 발생시킨 엔티티 종류 (약한 참조, FK 없음)"""

    SURVEY = "survey"
    REDEMPTION = "redemption"
    AUDIT_LOG = "audit_log"


class CoinBalance(Base):
    __tablename__ = "coin_balances"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_coin_balances_non_negative"),
        CheckConstraint(
            "balance = lifetime_earned - lifetime_spent",
            name="ck_coin_balances_lifetime",
        ),
    )

    user_id = Column(BigIntId, ForeignKey("users.id"), primary_key=True)
    balance = Column(BigInteger, nullable=False, default=0, server_default="0")
    lifetime_earned = Column(BigInteger, nullable=False, default=0, server_default="0")
    lifetime_spent = Column(BigInteger, nullable=False, default=0, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<CoinBalance(user_id={self.user_id}, balance={self.balance})>"


class CoinTransaction(Base, CreatedAtMixin):
    __tablename__ = "coin_transactions"
    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_coin_transactions_non_zero"),
        Index("idx_coin_transactions_user_created", "user_id", "created_at"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigIntId, ForeignKey("users.id"), nullable=False)

    # 양수 = 획득(credit), 음수 = 사용(debit)
    amount = Column(BigInteger, nullable=False)
    transaction_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)

    related_entity_type = Column(String(50))
    related_entity_id = Column(Integer)

    # 클라이언트 재시도 시 중복 적용 방지용 (선택)
    idempotency_key = Column(String(255), unique=True)

    def __repr__(self):
        return (
            f"<CoinTransaction(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, type={self.transaction_type})>"
        )
