"""
관리자 코인 API 라우터

- GET  /admin/coins/transactions: 전체 거래 조회 (필터/검색/페이징)
- POST /admin/coins/adjust: 코인 수동 조정 (finance, admin, super_admin)
- GET  /admin/coins/balance/{user_id}: 사용자 잔액
- GET  /admin/coins/metrics: 발행/사용 지표
- GET  /admin/coins/integrity/global, /integrity/{user_id}: 정합성 검증 (admin)
- POST /admin/coins/survey-rewards: 설문 보상 지급 (editor 이상)

조회 엔드포인트(거래, 지표, 정합성)도 감사 로그에 read 로 남깁니다.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from furioso.core.auth_middleware import (
    require_admin,
    require_any_role,
    require_role,
    require_staff,
)
from furioso.deps import (
    get_audit_service,
    get_client_info,
    get_ledger_service,
    get_reward_service,
)
from furioso.models.audit import AuditAction, AuditEntityType
from furioso.models.user import UserRole
from furioso.schemas.coins import (
    AdminAdjustmentRequest,
    AdminTransactionFilter,
    AdminTransactionListResponse,
    CoinBalanceResponse,
    CoinIntegrityCheckResponse,
    CoinMetricsResponse,
    LedgerApplyResult,
    SurveyRewardRequest,
)
from furioso.schemas.pagination import PaginationLimits
from furioso.schemas.user import User as UserSchema
from furioso.services.audit_service import AuditService
from furioso.services.ledger_service import LedgerService
from furioso.services.reward_service import CoinRewardService

router = APIRouter(prefix="/admin/coins", tags=["admin-coins"])


def _log_read(
    audit_service: AuditService,
    staff: UserSchema,
    entity_type: AuditEntityType,
    client_info: dict,
    entity_id: Optional[int] = None,
    details: Optional[dict] = None,
) -> None:
    audit_service.log_action(
        admin_id=staff.id,
        admin_identity=staff.email,
        action=AuditAction.READ,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        **client_info,
    )


@router.get("/transactions", response_model=AdminTransactionListResponse)
def list_transactions(
    user_id: Optional[int] = Query(None, gt=0),
    transaction_type: Optional[str] = Query(None, alias="type"),
    amount_sign: Optional[Literal["positive", "negative"]] = Query(None, alias="amountType"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.ADMIN_TRANSACTIONS["default"],
        ge=PaginationLimits.ADMIN_TRANSACTIONS["min"],
        le=PaginationLimits.ADMIN_TRANSACTIONS["max"],
    ),
    staff: UserSchema = Depends(require_staff),
    client_info: dict = Depends(get_client_info),
    ledger_service: LedgerService = Depends(get_ledger_service),
    audit_service: AuditService = Depends(get_audit_service),
) -> AdminTransactionListResponse:
    """전체 코인 거래 조회 - 이메일/닉네임 검색 지원"""
    filters = AdminTransactionFilter(
        user_id=user_id,
        transaction_type=transaction_type,
        amount_sign=amount_sign,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    result = ledger_service.list_transactions(filters)
    _log_read(
        audit_service,
        staff,
        AuditEntityType.COIN_TRANSACTION,
        client_info,
        details={
            "filters": filters.model_dump(mode="json", exclude_none=True),
            "total_count": result.total_count,
        },
    )
    return result


@router.post(
    "/adjust",
    response_model=LedgerApplyResult,
    status_code=status.HTTP_201_CREATED,
)
def adjust_coins(
    request: AdminAdjustmentRequest,
    admin: UserSchema = Depends(
        require_any_role(UserRole.FINANCE, UserRole.ADMIN, UserRole.SUPER_ADMIN)
    ),
    client_info: dict = Depends(get_client_info),
    reward_service: CoinRewardService = Depends(get_reward_service),
) -> LedgerApplyResult:
    """
    코인 수동 조정 (감사 로그 기록)

    HTTP Status:
        201: 조정 완료
        400: 차감 시 잔액 부족 (BALANCE_001)
        403: 권한 없음
        404: 대상 사용자 없음
    """
    return reward_service.admin_adjust(admin, request, **client_info)


@router.get("/balance/{user_id}", response_model=CoinBalanceResponse)
def get_user_balance(
    user_id: int = Path(..., gt=0),
    _staff: UserSchema = Depends(require_staff),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> CoinBalanceResponse:
    return ledger_service.get_balance(user_id)


@router.get("/metrics", response_model=CoinMetricsResponse)
def get_metrics(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    staff: UserSchema = Depends(require_staff),
    client_info: dict = Depends(get_client_info),
    ledger_service: LedgerService = Depends(get_ledger_service),
    audit_service: AuditService = Depends(get_audit_service),
) -> CoinMetricsResponse:
    """코인 경제 지표 (기본: 최근 30일)"""
    metrics = ledger_service.get_metrics(start_date=start_date, end_date=end_date)
    _log_read(
        audit_service,
        staff,
        AuditEntityType.COIN_METRICS,
        client_info,
        details={
            "start_date": metrics.start_date.isoformat(),
            "end_date": metrics.end_date.isoformat(),
        },
    )
    return metrics


@router.get("/integrity/global", response_model=CoinIntegrityCheckResponse)
def verify_global_integrity(
    admin: UserSchema = Depends(require_admin),
    client_info: dict = Depends(get_client_info),
    ledger_service: LedgerService = Depends(get_ledger_service),
    audit_service: AuditService = Depends(get_audit_service),
) -> CoinIntegrityCheckResponse:
    """전체 잔액과 원장 합계 비교"""
    report = ledger_service.verify_global_integrity()
    _log_read(
        audit_service, admin, AuditEntityType.COIN_BALANCE, client_info,
        details={"scope": "global", "status": report.status},
    )
    return report


@router.get("/integrity/{user_id}", response_model=CoinIntegrityCheckResponse)
def verify_user_integrity(
    user_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_admin),
    client_info: dict = Depends(get_client_info),
    ledger_service: LedgerService = Depends(get_ledger_service),
    audit_service: AuditService = Depends(get_audit_service),
) -> CoinIntegrityCheckResponse:
    report = ledger_service.verify_user_integrity(user_id)
    _log_read(
        audit_service, admin, AuditEntityType.COIN_BALANCE, client_info,
        entity_id=user_id,
        details={"scope": "user", "status": report.status},
    )
    return report


@router.post("/survey-rewards", response_model=LedgerApplyResult)
def grant_survey_reward(
    request: SurveyRewardRequest,
    _editor: UserSchema = Depends(require_role(UserRole.EDITOR)),
    reward_service: CoinRewardService = Depends(get_reward_service),
) -> LedgerApplyResult:
    """설문 완료 보상 지급 - 같은 설문을 다시 요청하면 기존 거래를 반환 (replayed=true)"""
    return reward_service.grant_survey_reward(request)
