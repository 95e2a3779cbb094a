"""
코인 리포지토리 - 잔액/원장 테이블 접근

핵심 특징:
- 잔액 변경은 DB가 평가하는 단일 조건부 UPDATE (balance = balance + :amount)
  로만 수행하며, 애플리케이션 메모리에서 읽고-더하고-쓰는 패턴을 쓰지 않습니다.
- 잔액 행은 INSERT ... ON CONFLICT DO NOTHING 으로 지연 생성됩니다.
- 이 리포지토리는 커밋하지 않습니다. 트랜잭션 경계는 LedgerService가 관리합니다.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, desc, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from furioso.models.coins import CoinBalance, CoinTransaction
from furioso.models.user import User
from furioso.repositories.base import BaseRepository
from furioso.schemas.coins import (
    AdminTransactionFilter,
    AdminTransactionItem,
    CoinTransactionEntry,
)

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class CoinRepository(BaseRepository[CoinTransaction, CoinTransactionEntry]):
    def __init__(self, db: Session):
        super().__init__(CoinTransaction, CoinTransactionEntry, db)

    # ------------------------------------------------------------------
    # 쓰기 (호출자의 트랜잭션 안에서 실행)
    # ------------------------------------------------------------------

    def user_exists(self, user_id: int) -> bool:
        return (
            self.db.execute(select(User.id).where(User.id == user_id)).first()
            is not None
        )

    def ensure_balance_row(self, user_id: int) -> None:
        """잔액 행이 없으면 0으로 생성 (동시 생성 경쟁에 안전)"""
        dialect = self.db.get_bind().dialect.name
        insert_fn = _DIALECT_INSERTS.get(dialect)

        if insert_fn is not None:
            stmt = (
                insert_fn(CoinBalance)
                .values(user_id=user_id, balance=0, lifetime_earned=0, lifetime_spent=0)
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            self.db.execute(stmt)
            return

        # ON CONFLICT 미지원 방언: 세이브포인트 안에서 삽입 후 중복이면 무시
        if self.get_balance_row(user_id) is not None:
            return
        try:
            with self.db.begin_nested():
                self.db.add(CoinBalance(user_id=user_id))
        except IntegrityError:
            pass

    def apply_delta(self, user_id: int, amount: int) -> bool:
        """조건부 원자적 증감. 잔액이 음수가 되면 아무 행도 변경하지 않고 False"""
        earned = amount if amount > 0 else 0
        spent = -amount if amount < 0 else 0

        stmt = (
            update(CoinBalance)
            .where(
                CoinBalance.user_id == user_id,
                CoinBalance.balance + amount >= 0,
            )
            .values(
                balance=CoinBalance.balance + amount,
                lifetime_earned=CoinBalance.lifetime_earned + earned,
                lifetime_spent=CoinBalance.lifetime_spent + spent,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def insert_transaction(
        self,
        user_id: int,
        amount: int,
        transaction_type: str,
        description: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> CoinTransaction:
        transaction = CoinTransaction(
            user_id=user_id,
            amount=amount,
            transaction_type=transaction_type,
            description=description,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            idempotency_key=idempotency_key,
        )
        self.db.add(transaction)
        self.db.flush()
        self.db.refresh(transaction)
        return transaction

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_balance_row(self, user_id: int) -> Optional[CoinBalance]:
        """DB의 현재 값을 다시 읽음 (identity map 캐시 무시)"""
        return self.db.execute(
            select(CoinBalance)
            .where(CoinBalance.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def find_by_idempotency_key(self, key: str) -> Optional[CoinTransaction]:
        return self.db.execute(
            select(CoinTransaction).where(CoinTransaction.idempotency_key == key)
        ).scalar_one_or_none()

    def get_history(
        self, user_id: int, limit: Optional[int] = None, offset: int = 0
    ) -> List[CoinTransactionEntry]:
        """최신순 (created_at DESC, id DESC) 거래 내역"""
        query = (
            self.db.query(CoinTransaction)
            .filter(CoinTransaction.user_id == user_id)
            .order_by(desc(CoinTransaction.created_at), desc(CoinTransaction.id))
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_schema(row) for row in query.all()]

    def count_for_user(self, user_id: int) -> int:
        return self.count({"user_id": user_id})

    def list_transactions(
        self, filters: AdminTransactionFilter
    ) -> Tuple[List[AdminTransactionItem], int, int]:
        """관리자용 전체 거래 조회 - (항목, 전체 건수, 금액 합계)"""
        conditions = []
        if filters.user_id is not None:
            conditions.append(CoinTransaction.user_id == filters.user_id)
        if filters.transaction_type:
            conditions.append(CoinTransaction.transaction_type == filters.transaction_type)
        if filters.amount_sign == "positive":
            conditions.append(CoinTransaction.amount > 0)
        elif filters.amount_sign == "negative":
            conditions.append(CoinTransaction.amount < 0)
        if filters.start_date is not None:
            conditions.append(CoinTransaction.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(CoinTransaction.created_at <= filters.end_date)
        if filters.search:
            term = f"%{filters.search.strip()}%"
            conditions.append(or_(User.email.ilike(term), User.nickname.ilike(term)))

        base = (
            select(CoinTransaction, User.email, User.nickname)
            .join(User, User.id == CoinTransaction.user_id)
            .where(*conditions)
        )

        totals = self.db.execute(
            select(
                func.count(CoinTransaction.id),
                func.coalesce(func.sum(CoinTransaction.amount), 0),
            )
            .select_from(CoinTransaction)
            .join(User, User.id == CoinTransaction.user_id)
            .where(*conditions)
        ).one()

        rows = self.db.execute(
            base.order_by(desc(CoinTransaction.created_at), desc(CoinTransaction.id))
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        ).all()

        items = [
            AdminTransactionItem(
                **CoinTransactionEntry.model_validate(tx).model_dump(),
                user_email=email,
                user_nickname=nickname,
            )
            for tx, email, nickname in rows
        ]
        return items, int(totals[0]), int(totals[1])

    # ------------------------------------------------------------------
    # 집계 / 정합성
    # ------------------------------------------------------------------

    def sum_issued_and_spent(self, start: datetime, end: datetime) -> Tuple[int, int]:
        issued_expr = func.coalesce(
            func.sum(case((CoinTransaction.amount > 0, CoinTransaction.amount), else_=0)), 0
        )
        spent_expr = func.coalesce(
            func.sum(case((CoinTransaction.amount < 0, -CoinTransaction.amount), else_=0)), 0
        )
        row = self.db.execute(
            select(issued_expr, spent_expr).where(
                CoinTransaction.created_at >= start, CoinTransaction.created_at <= end
            )
        ).one()
        return int(row[0]), int(row[1])

    def balance_totals(self) -> Tuple[int, float]:
        """(전체 잔액 합계, 사용자 평균 잔액)"""
        row = self.db.execute(
            select(
                func.coalesce(func.sum(CoinBalance.balance), 0),
                func.coalesce(func.avg(CoinBalance.balance), 0),
            )
        ).one()
        return int(row[0]), float(row[1])

    def top_transaction_types(
        self, start: datetime, end: datetime, limit: int = 5
    ) -> List[Tuple[str, int, int]]:
        occurrences = func.count(CoinTransaction.id).label("occurrences")
        rows = self.db.execute(
            select(
                CoinTransaction.transaction_type,
                occurrences,
                func.sum(CoinTransaction.amount),
            )
            .where(CoinTransaction.created_at >= start, CoinTransaction.created_at <= end)
            .group_by(CoinTransaction.transaction_type)
            .order_by(desc(occurrences), CoinTransaction.transaction_type)
            .limit(limit)
        ).all()
        return [(row[0], int(row[1]), int(row[2] or 0)) for row in rows]

    def daily_totals(self, start: datetime, end: datetime) -> List[Tuple[object, int, int]]:
        day = func.date(CoinTransaction.created_at).label("day")
        rows = self.db.execute(
            select(
                day,
                func.sum(case((CoinTransaction.amount > 0, CoinTransaction.amount), else_=0)),
                func.sum(case((CoinTransaction.amount < 0, -CoinTransaction.amount), else_=0)),
            )
            .where(CoinTransaction.created_at >= start, CoinTransaction.created_at <= end)
            .group_by(day)
            .order_by(day)
        ).all()
        return [(row[0], int(row[1] or 0), int(row[2] or 0)) for row in rows]

    def transaction_sums_for_user(self, user_id: int) -> Tuple[int, int, int, int]:
        """(합계, 획득 합계, 사용 합계, 건수)"""
        row = self.db.execute(
            select(
                func.coalesce(func.sum(CoinTransaction.amount), 0),
                func.coalesce(
                    func.sum(case((CoinTransaction.amount > 0, CoinTransaction.amount), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((CoinTransaction.amount < 0, -CoinTransaction.amount), else_=0)), 0
                ),
                func.count(CoinTransaction.id),
            ).where(CoinTransaction.user_id == user_id)
        ).one()
        return int(row[0]), int(row[1]), int(row[2]), int(row[3])

    def transaction_sums_by_user(self) -> Dict[int, int]:
        rows = self.db.execute(
            select(CoinTransaction.user_id, func.sum(CoinTransaction.amount)).group_by(
                CoinTransaction.user_id
            )
        ).all()
        return {int(user_id): int(total or 0) for user_id, total in rows}

    def balances_by_user(self) -> Dict[int, int]:
        rows = self.db.execute(select(CoinBalance.user_id, CoinBalance.balance)).all()
        return {int(user_id): int(balance) for user_id, balance in rows}

    def total_transaction_count(self) -> int:
        return int(self.db.execute(select(func.count(CoinTransaction.id))).scalar_one())
