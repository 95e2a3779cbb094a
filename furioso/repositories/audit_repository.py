from typing import List, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from furioso.models.audit import AuditLog
from furioso.repositories.base import BaseRepository
from furioso.schemas.audit import AuditLogEntry, AuditLogFilter


class AuditRepository(BaseRepository[AuditLog, AuditLogEntry]):
    """감사 로그 리포지토리 (추가 전용)"""

    def __init__(self, db: Session):
        super().__init__(AuditLog, AuditLogEntry, db)

    def search(self, filters: AuditLogFilter) -> Tuple[List[AuditLogEntry], int]:
        query = self._apply_filters(
            self.db.query(AuditLog),
            {
                key: value
                for key, value in {
                    "admin_id": filters.admin_id,
                    "action": filters.action,
                    "entity_type": filters.entity_type,
                    "entity_id": filters.entity_id,
                }.items()
                if value is not None
            },
        )
        if filters.start_date is not None:
            query = query.filter(AuditLog.created_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(AuditLog.created_at <= filters.end_date)

        total = query.count()
        rows = (
            query.order_by(desc(AuditLog.created_at), desc(AuditLog.id))
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return [self._to_schema(row) for row in rows], total
