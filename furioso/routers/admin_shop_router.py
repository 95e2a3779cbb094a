from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from furioso.core.auth_middleware import require_role, require_staff
from furioso.deps import get_client_info, get_shop_service
from furioso.models.shop import RedemptionStatus
from furioso.models.user import UserRole
from furioso.schemas.pagination import PaginationLimits
from furioso.schemas.shop import (
    RedemptionListResponse,
    RedemptionOrder,
    RedemptionStatusUpdate,
    ShopItem,
    ShopItemCreate,
    ShopItemUpdate,
)
from furioso.schemas.user import User as UserSchema
from furioso.services.shop_service import ShopService

router = APIRouter(prefix="/admin/shop", tags=["admin-shop"])


@router.post("/items", response_model=ShopItem, status_code=status.HTTP_201_CREATED)
def create_item(
    request: ShopItemCreate,
    admin: UserSchema = Depends(require_role(UserRole.EDITOR)),
    client_info: dict = Depends(get_client_info),
    shop_service: ShopService = Depends(get_shop_service),
) -> ShopItem:
    """상품 등록"""
    return shop_service.create_item(admin, request, **client_info)


@router.patch("/items/{item_id}", response_model=ShopItem)
def update_item(
    request: ShopItemUpdate,
    item_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_role(UserRole.EDITOR)),
    client_info: dict = Depends(get_client_info),
    shop_service: ShopService = Depends(get_shop_service),
) -> ShopItem:
    """상품 수정 (가격/재고/판매 여부)"""
    return shop_service.update_item(admin, item_id, request, **client_info)


@router.get("/redemptions", response_model=RedemptionListResponse)
def list_redemptions(
    status_filter: Optional[RedemptionStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(
        PaginationLimits.REDEMPTIONS["default"],
        ge=PaginationLimits.REDEMPTIONS["min"],
        le=PaginationLimits.REDEMPTIONS["max"],
    ),
    _staff: UserSchema = Depends(require_staff),
    shop_service: ShopService = Depends(get_shop_service),
) -> RedemptionListResponse:
    return shop_service.list_redemptions(status=status_filter, page=page, limit=limit)


@router.patch("/redemptions/{order_id}", response_model=RedemptionOrder)
def update_redemption_status(
    request: RedemptionStatusUpdate,
    order_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_role(UserRole.EDITOR)),
    client_info: dict = Depends(get_client_info),
    shop_service: ShopService = Depends(get_shop_service),
) -> RedemptionOrder:
    """
    교환 주문 상태 변경

    pending → processing|cancelled, processing → shipped|cancelled,
    shipped → completed|cancelled. 취소 시 재고 복구 및 코인 환불.

    HTTP Status:
        200: 변경 완료
        400: 허용되지 않는 전이 (REDEMPTION_001)
        404: 주문 없음
        409: 동시 변경 충돌
    """
    return shop_service.update_redemption_status(admin, order_id, request, **client_info)
