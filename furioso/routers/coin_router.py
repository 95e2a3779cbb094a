"""
코인 API 라우터 (사용자용)

- GET /coins/balance: 내 코인 잔액
- GET /coins/transactions: 내 코인 거래 내역 (최신순, 페이징)
"""

from fastapi import APIRouter, Depends, Query

from furioso.core.auth_middleware import get_current_active_user
from furioso.deps import get_ledger_service
from furioso.schemas.coins import CoinBalanceResponse, CoinHistoryResponse
from furioso.schemas.pagination import PaginationLimits
from furioso.schemas.user import User as UserSchema
from furioso.services.ledger_service import LedgerService

router = APIRouter(prefix="/coins", tags=["coins"])


@router.get("/balance", response_model=CoinBalanceResponse)
def get_my_balance(
    current_user: UserSchema = Depends(get_current_active_user),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> CoinBalanceResponse:
    """
    내 코인 잔액 조회

    인증 필요: Bearer 토큰

    HTTP Status:
        200: 성공 (거래가 없으면 0)
        401: 인증 실패
        503: 저장소 연결 실패
    """
    return ledger_service.get_balance(current_user.id)


@router.get("/transactions", response_model=CoinHistoryResponse)
def get_my_transactions(
    limit: int = Query(
        PaginationLimits.COIN_HISTORY["default"],
        ge=PaginationLimits.COIN_HISTORY["min"],
        le=PaginationLimits.COIN_HISTORY["max"],
        description="페이지 크기",
    ),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: UserSchema = Depends(get_current_active_user),
    ledger_service: LedgerService = Depends(get_ledger_service),
) -> CoinHistoryResponse:
    """내 코인 거래 내역 - created_at 내림차순, 같은 시각은 id 내림차순"""
    return ledger_service.get_history_page(current_user.id, limit=limit, offset=offset)
