import logging
from math import ceil
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from furioso.core.exceptions import ValidationError
from furioso.models.audit import AuditAction, AuditEntityType
from furioso.repositories.audit_repository import AuditRepository
from furioso.schemas.audit import AuditLogEntry, AuditLogFilter, AuditLogListResponse

logger = logging.getLogger(__name__)


class AuditService:
    """관리자 행위 감사 로그"""

    def __init__(self, db: Session):
        self.db = db
        self.audit_repo = AuditRepository(db)

    def log_action(
        self,
        admin_id: int,
        admin_identity: str,
        action: Union[AuditAction, str],
        entity_type: Union[AuditEntityType, str],
        entity_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLogEntry:
        """감사 로그 기록

        commit=False면 호출자의 트랜잭션에 포함되어 함께 커밋/롤백됩니다.
        """
        entry = self.audit_repo.create(
            commit=commit,
            admin_id=admin_id,
            admin_identity=admin_identity,
            action=AuditAction(action).value,
            entity_type=AuditEntityType(entity_type).value,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(
            f"Audit: admin {admin_id} {entry.action} {entry.entity_type}"
            f"#{entry.entity_id or '-'}"
        )
        return entry

    def get_logs(self, filters: AuditLogFilter) -> AuditLogListResponse:
        if (
            filters.start_date is not None
            and filters.end_date is not None
            and filters.start_date > filters.end_date
        ):
            raise ValidationError("start_date must not be after end_date")

        logs, total = self.audit_repo.search(filters)
        return AuditLogListResponse(
            logs=logs,
            total_count=total,
            page=filters.page,
            page_count=ceil(total / filters.limit) if total else 0,
        )
