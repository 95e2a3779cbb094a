from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from furioso.models.coins import RelatedEntityType


class RelatedEntity(BaseModel):
    """거래를 발생시킨 엔티티에 대한 약한 참조 (type, id)"""

    entity_type: str = Field(..., min_length=1, max_length=50, description="엔티티 종류")
    entity_id: int = Field(..., description="엔티티 ID")

    @classmethod
    def of(cls, entity_type: RelatedEntityType, entity_id: int) -> "RelatedEntity":
        return cls(entity_type=entity_type.value, entity_id=entity_id)


class CoinBalanceResponse(BaseModel):
    """코인 잔액 응답"""

    model_config = ConfigDict(from_attributes=True)

    user_id: int = Field(..., description="사용자 ID")
    balance: int = Field(0, description="현재 잔액")
    lifetime_earned: int = Field(0, description="누적 획득 코인")
    lifetime_spent: int = Field(0, description="누적 사용 코인")
    updated_at: Optional[datetime] = Field(None, description="마지막 변경 시각")


class CoinTransactionEntry(BaseModel):
    """코인 원장 항목"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    amount: int = Field(..., description="변동량 (양수: 획득, 음수: 사용)")
    transaction_type: str
    description: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    idempotency_key: Optional[str] = None
    created_at: datetime


class LedgerApplyResult(BaseModel):
    """apply_transaction 결과 - 생성된 거래와 갱신된 잔액"""

    transaction: CoinTransactionEntry
    balance: CoinBalanceResponse
    replayed: bool = Field(False, description="멱등 키로 기존 거래를 반환했는지 여부")


class CoinHistoryResponse(BaseModel):
    """내 코인 거래 내역 (페이징)"""

    balance: int
    entries: List[CoinTransactionEntry]
    total_count: int
    has_next: bool
    limit: int
    offset: int


class AdminTransactionFilter(BaseModel):
    """관리자 거래 조회 필터"""

    user_id: Optional[int] = None
    transaction_type: Optional[str] = None
    amount_sign: Optional[Literal["positive", "negative"]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = Field(None, description="이메일/닉네임 검색어")
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class AdminTransactionItem(CoinTransactionEntry):
    user_email: str
    user_nickname: str


class AdminTransactionListResponse(BaseModel):
    transactions: List[AdminTransactionItem]
    total_count: int
    total_amount: int
    page: int
    page_count: int


class AdminAdjustmentRequest(BaseModel):
    """관리자 코인 조정 요청"""

    user_id: int = Field(..., gt=0, description="대상 사용자 ID")
    amount: int = Field(..., description="조정할 코인 (양수: 지급, 음수: 차감)")
    reason: str = Field(..., min_length=1, max_length=255, description="조정 사유")

    @field_validator("amount")
    @classmethod
    def amount_must_not_be_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Adjustment amount cannot be zero")
        return v


class SurveyRewardRequest(BaseModel):
    """설문 완료 보상 지급 요청"""

    user_id: int = Field(..., gt=0)
    survey_id: int = Field(..., gt=0)
    survey_title: str = Field(..., min_length=1, max_length=255)
    reward: int = Field(..., gt=0)


class TransactionTypeStat(BaseModel):
    transaction_type: str
    occurrences: int
    total_amount: int


class DailyCoinStat(BaseModel):
    day: date
    issued: int
    spent: int


class CoinMetricsResponse(BaseModel):
    """코인 경제 지표"""

    start_date: datetime
    end_date: datetime
    total_coins_issued: int
    total_coins_spent: int
    active_coin_balance: int
    average_user_balance: float
    top_transaction_types: List[TransactionTypeStat]
    daily_transactions: List[DailyCoinStat]


class CoinIntegrityCheckResponse(BaseModel):
    """코인 정합성 검증 응답"""

    status: Literal["OK", "MISMATCH"]
    user_id: Optional[int] = Field(None, description="사용자 ID (단일 사용자 검증 시)")
    recorded_balance: Optional[int] = Field(None, description="잔액 테이블 값 합계")
    calculated_balance: Optional[int] = Field(None, description="거래 합계로 계산한 잔액")
    recorded_lifetime_earned: Optional[int] = None
    calculated_lifetime_earned: Optional[int] = None
    recorded_lifetime_spent: Optional[int] = None
    calculated_lifetime_spent: Optional[int] = None
    entry_count: int = 0
    mismatched_users: List[int] = Field(default_factory=list)
    verified_at: datetime
