"""
코인 원장 서비스

coin_transactions 행을 만들고 coin_balances 행을 변경하는 유일한 컴포넌트입니다.
가입 보너스, 설문 보상, 상품 교환, 관리자 조정 등 모든 호출자는 이 서비스를 통해
부호가 있는 변동량(+획득 / -사용)과 사유 태그만 전달합니다.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from math import ceil
from typing import List, Optional

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from furioso.config import Settings
from furioso.core.exceptions import (
    ConflictError,
    InsufficientFundsError,
    InvalidTransactionError,
    StorageUnavailableError,
    UserNotFoundError,
    ValidationError,
)
from furioso.models.coins import CoinTransaction
from furioso.repositories.coin_repository import CoinRepository
from furioso.schemas.coins import (
    AdminTransactionFilter,
    AdminTransactionListResponse,
    CoinBalanceResponse,
    CoinHistoryResponse,
    CoinIntegrityCheckResponse,
    CoinMetricsResponse,
    CoinTransactionEntry,
    DailyCoinStat,
    LedgerApplyResult,
    RelatedEntity,
    TransactionTypeStat,
)

logger = logging.getLogger(__name__)


class LedgerService:
    """코인 잔액/원장 비즈니스 로직"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.coin_repo = CoinRepository(db)

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _safe_rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Rollback failed after store error: {str(e)}")

    @contextmanager
    def _storage_guard(self, action: str):
        """연결 계열 DB 오류를 StorageUnavailableError로 변환"""
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            self._safe_rollback()
            logger.error(f"Coin store unavailable during {action}: {str(e)}")
            raise StorageUnavailableError(details={"action": action}) from e
        except DBAPIError as e:
            if not e.connection_invalidated:
                raise
            self._safe_rollback()
            logger.error(f"Coin store connection lost during {action}: {str(e)}")
            raise StorageUnavailableError(details={"action": action}) from e

    @staticmethod
    def _validate_input(amount: int, transaction_type: str, description: str) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidTransactionError("Amount must be an integer")
        if amount == 0:
            raise InvalidTransactionError("Amount must not be zero")
        if not transaction_type or not transaction_type.strip():
            raise InvalidTransactionError("Transaction type is required")
        if not description or not description.strip():
            raise InvalidTransactionError("Description is required")

    def _ensure_user(self, user_id: int) -> None:
        if not self.coin_repo.user_exists(user_id):
            raise UserNotFoundError(user_id)

    def _current_balance(self, user_id: int) -> CoinBalanceResponse:
        row = self.coin_repo.get_balance_row(user_id)
        if row is None:
            return CoinBalanceResponse(user_id=user_id)
        return CoinBalanceResponse.model_validate(row)

    def _replay(
        self, existing: CoinTransaction, user_id: int, amount: int
    ) -> LedgerApplyResult:
        if existing.user_id != user_id or existing.amount != amount:
            raise ConflictError(
                "Idempotency key already used for a different transaction",
                details={"idempotency_key": existing.idempotency_key},
            )
        logger.info(
            f"Replayed coin transaction {existing.id} for user {user_id} "
            f"(key={existing.idempotency_key})"
        )
        return LedgerApplyResult(
            transaction=CoinTransactionEntry.model_validate(existing),
            balance=self._current_balance(user_id),
            replayed=True,
        )

    # ------------------------------------------------------------------
    # 쓰기
    # ------------------------------------------------------------------

    def apply_transaction(
        self,
        user_id: int,
        amount: int,
        transaction_type: str,
        description: str,
        related_entity: Optional[RelatedEntity] = None,
        idempotency_key: Optional[str] = None,
        commit: bool = True,
    ) -> LedgerApplyResult:
        """원자적 코인 변동 적용

        잔액 증감과 원장 기록이 하나의 DB 트랜잭션 안에서 함께 반영되거나
        함께 취소됩니다. 잔액 계산은 DB의 조건부 UPDATE가 수행합니다.

        Args:
            user_id: 사용자 ID
            amount: 변동량 (0이 아닌 정수, 양수 획득 / 음수 사용)
            transaction_type: 사유 태그 (예: signup_bonus, redemption)
            description: 사람이 읽는 설명
            related_entity: 거래를 발생시킨 엔티티 (type, id)
            idempotency_key: 재시도 중복 방지 키 (선택)
            commit: False면 커밋하지 않고 트랜잭션을 호출자에게 넘김

        Returns:
            LedgerApplyResult: 생성된 거래와 갱신된 잔액

        Raises:
            InvalidTransactionError: 입력 제약 위반
            UserNotFoundError: 존재하지 않는 사용자
            InsufficientFundsError: 잔액이 음수가 되는 차감
            ConflictError: 멱등 키가 다른 거래에 쓰였거나, commit=False 중 동시 커밋과 충돌
            StorageUnavailableError: 저장소 연결 실패
        """
        self._validate_input(amount, transaction_type, description)
        transaction_type = transaction_type.strip()
        description = description.strip()

        with self._storage_guard("apply_transaction"):
            self._ensure_user(user_id)

            if idempotency_key:
                existing = self.coin_repo.find_by_idempotency_key(idempotency_key)
                if existing is not None:
                    return self._replay(existing, user_id, amount)

            try:
                self.coin_repo.ensure_balance_row(user_id)

                if not self.coin_repo.apply_delta(user_id, amount):
                    current = self.coin_repo.get_balance_row(user_id)
                    available = current.balance if current is not None else 0
                    self.db.rollback()
                    logger.warning(
                        f"Rejected debit for user {user_id}: "
                        f"requested {-amount}, available {available}"
                    )
                    raise InsufficientFundsError(user_id, available, -amount)

                transaction = self.coin_repo.insert_transaction(
                    user_id=user_id,
                    amount=amount,
                    transaction_type=transaction_type,
                    description=description,
                    related_entity_type=(
                        related_entity.entity_type if related_entity else None
                    ),
                    related_entity_id=(
                        related_entity.entity_id if related_entity else None
                    ),
                    idempotency_key=idempotency_key,
                )
                result = LedgerApplyResult(
                    transaction=CoinTransactionEntry.model_validate(transaction),
                    balance=self._current_balance(user_id),
                )

                if commit:
                    self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                if idempotency_key:
                    existing = self.coin_repo.find_by_idempotency_key(idempotency_key)
                    if existing is not None and not commit:
                        # 호출자의 보류 중인 쓰기도 함께 롤백됨. 단위 전체를 다시 시도해야 함
                        logger.warning(
                            f"Idempotency key {idempotency_key} committed concurrently; "
                            f"caller unit for user {user_id} was rolled back"
                        )
                        raise ConflictError(
                            "Concurrent transaction with the same idempotency key; retry the operation",
                            details={"idempotency_key": idempotency_key},
                        ) from e
                    if existing is not None:
                        return self._replay(existing, user_id, amount)
                logger.error(f"Integrity violation applying coins for user {user_id}: {str(e)}")
                raise

        logger.info(
            f"Applied {amount:+d} coins ({transaction_type}) for user {user_id}: "
            f"balance={result.balance.balance}, tx={result.transaction.id}"
        )
        return result

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_balance(self, user_id: int) -> CoinBalanceResponse:
        """현재 잔액 조회 (잔액 행이 없으면 0)"""
        with self._storage_guard("get_balance"):
            self._ensure_user(user_id)
            return self._current_balance(user_id)

    def get_history(
        self, user_id: int, limit: Optional[int] = None, offset: int = 0
    ) -> List[CoinTransactionEntry]:
        """거래 내역 조회 - 최신순, 호출마다 현재 상태를 다시 읽음"""
        if limit is not None:
            if limit < 0:
                raise ValidationError("Limit must not be negative")
            limit = min(limit, self.settings.LEDGER_HISTORY_MAX_LIMIT)
            if limit == 0:
                return []
        if offset < 0:
            raise ValidationError("Offset must not be negative")

        with self._storage_guard("get_history"):
            self._ensure_user(user_id)
            return self.coin_repo.get_history(user_id, limit=limit, offset=offset)

    def get_history_page(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> CoinHistoryResponse:
        limit = max(1, min(limit, self.settings.LEDGER_HISTORY_MAX_LIMIT))
        entries = self.get_history(user_id, limit=limit, offset=offset)

        with self._storage_guard("get_history_page"):
            total_count = self.coin_repo.count_for_user(user_id)
            balance = self._current_balance(user_id)

        return CoinHistoryResponse(
            balance=balance.balance,
            entries=entries,
            total_count=total_count,
            has_next=offset + len(entries) < total_count,
            limit=limit,
            offset=offset,
        )

    def list_transactions(
        self, filters: AdminTransactionFilter
    ) -> AdminTransactionListResponse:
        """관리자용 전체 거래 조회"""
        if (
            filters.start_date is not None
            and filters.end_date is not None
            and filters.start_date > filters.end_date
        ):
            raise ValidationError("start_date must not be after end_date")

        limit = min(filters.limit, self.settings.ADMIN_PAGE_MAX_LIMIT)
        filters = filters.model_copy(update={"limit": limit})

        with self._storage_guard("list_transactions"):
            items, total_count, total_amount = self.coin_repo.list_transactions(filters)

        return AdminTransactionListResponse(
            transactions=items,
            total_count=total_count,
            total_amount=total_amount,
            page=filters.page,
            page_count=ceil(total_count / limit) if total_count else 0,
        )

    def get_metrics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> CoinMetricsResponse:
        """코인 발행/사용 지표 (기본: 최근 METRICS_DEFAULT_DAYS일)"""
        end = end_date or datetime.now(timezone.utc)
        start = start_date or end - timedelta(days=self.settings.METRICS_DEFAULT_DAYS)
        if start > end:
            raise ValidationError("start_date must not be after end_date")

        with self._storage_guard("get_metrics"):
            issued, spent = self.coin_repo.sum_issued_and_spent(start, end)
            active_balance, average_balance = self.coin_repo.balance_totals()
            top_types = self.coin_repo.top_transaction_types(start, end)
            daily = self.coin_repo.daily_totals(start, end)

        return CoinMetricsResponse(
            start_date=start,
            end_date=end,
            total_coins_issued=issued,
            total_coins_spent=spent,
            active_coin_balance=active_balance,
            average_user_balance=round(average_balance, 2),
            top_transaction_types=[
                TransactionTypeStat(
                    transaction_type=tx_type, occurrences=count, total_amount=total
                )
                for tx_type, count, total in top_types
            ],
            daily_transactions=[
                DailyCoinStat(day=day, issued=day_issued, spent=day_spent)
                for day, day_issued, day_spent in daily
            ],
        )

    # ------------------------------------------------------------------
    # 정합성 검증
    # ------------------------------------------------------------------

    def verify_user_integrity(self, user_id: int) -> CoinIntegrityCheckResponse:
        """잔액 행과 원장 합계 비교"""
        with self._storage_guard("verify_user_integrity"):
            self._ensure_user(user_id)
            balance = self._current_balance(user_id)
            total, earned, spent, count = self.coin_repo.transaction_sums_for_user(user_id)

        ok = (
            balance.balance == total
            and balance.lifetime_earned == earned
            and balance.lifetime_spent == spent
        )
        if not ok:
            logger.warning(
                f"Coin integrity mismatch for user {user_id}: "
                f"recorded={balance.balance}, calculated={total}"
            )

        return CoinIntegrityCheckResponse(
            status="OK" if ok else "MISMATCH",
            user_id=user_id,
            recorded_balance=balance.balance,
            calculated_balance=total,
            recorded_lifetime_earned=balance.lifetime_earned,
            calculated_lifetime_earned=earned,
            recorded_lifetime_spent=balance.lifetime_spent,
            calculated_lifetime_spent=spent,
            entry_count=count,
            mismatched_users=[] if ok else [user_id],
            verified_at=datetime.now(timezone.utc),
        )

    def verify_global_integrity(self) -> CoinIntegrityCheckResponse:
        """전체 사용자 잔액 합계와 원장 합계 비교"""
        with self._storage_guard("verify_global_integrity"):
            balances = self.coin_repo.balances_by_user()
            sums = self.coin_repo.transaction_sums_by_user()
            count = self.coin_repo.total_transaction_count()

        mismatched = sorted(
            user_id
            for user_id in set(balances) | set(sums)
            if balances.get(user_id, 0) != sums.get(user_id, 0)
        )
        if mismatched:
            logger.warning(f"Global coin integrity mismatch for users {mismatched}")

        return CoinIntegrityCheckResponse(
            status="MISMATCH" if mismatched else "OK",
            recorded_balance=sum(balances.values()),
            calculated_balance=sum(sums.values()),
            entry_count=count,
            mismatched_users=mismatched,
            verified_at=datetime.now(timezone.utc),
        )
