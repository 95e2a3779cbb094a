from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from furioso.core.auth_middleware import require_admin
from furioso.deps import get_audit_service
from furioso.schemas.audit import AuditLogFilter, AuditLogListResponse
from furioso.schemas.pagination import PaginationLimits
from furioso.schemas.user import User as UserSchema
from furioso.services.audit_service import AuditService

router = APIRouter(prefix="/admin/audit-logs", tags=["admin-audit"])


@router.get("", response_model=AuditLogListResponse)
def get_audit_logs(
    admin_id: Optional[int] = Query(None, alias="adminId"),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    entity_id: Optional[str] = Query(None, alias="entityId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.AUDIT_LOGS["default"],
        ge=PaginationLimits.AUDIT_LOGS["min"],
        le=PaginationLimits.AUDIT_LOGS["max"],
    ),
    _admin: UserSchema = Depends(require_admin),
    audit_service: AuditService = Depends(get_audit_service),
) -> AuditLogListResponse:
    """관리자 감사 로그 조회 (최신순)"""
    filters = AuditLogFilter(
        admin_id=admin_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return audit_service.get_logs(filters)
