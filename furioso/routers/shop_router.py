from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from furioso.core.auth_middleware import get_current_active_user
from furioso.deps import get_shop_service
from furioso.schemas.shop import (
    RedemptionOrder,
    RedemptionRequest,
    RedemptionResult,
    ShopItem,
)
from furioso.schemas.user import User as UserSchema
from furioso.services.shop_service import ShopService

router = APIRouter(prefix="/shop", tags=["shop"])


@router.get("/items", response_model=List[ShopItem])
def list_items(
    active: bool = Query(True, description="판매 중인 상품만"),
    shop_service: ShopService = Depends(get_shop_service),
) -> List[ShopItem]:
    """상품 목록"""
    return shop_service.list_items(active_only=active)


@router.get("/items/{item_id}", response_model=ShopItem)
def get_item(
    item_id: int = Path(..., gt=0),
    shop_service: ShopService = Depends(get_shop_service),
) -> ShopItem:
    return shop_service.get_item(item_id)


@router.post(
    "/redemptions",
    response_model=RedemptionResult,
    status_code=status.HTTP_201_CREATED,
)
def redeem_item(
    request: RedemptionRequest,
    current_user: UserSchema = Depends(get_current_active_user),
    shop_service: ShopService = Depends(get_shop_service),
) -> RedemptionResult:
    """
    코인으로 상품 교환

    HTTP Status:
        201: 교환 완료 (주문 pending)
        400: 코인 부족(BALANCE_001), 재고 부족(STOCK_001), 판매 중지(SHOP_001)
        404: 상품 없음
    """
    return shop_service.redeem(current_user.id, request)


@router.get("/redemptions/me", response_model=List[RedemptionOrder])
def list_my_redemptions(
    current_user: UserSchema = Depends(get_current_active_user),
    shop_service: ShopService = Depends(get_shop_service),
) -> List[RedemptionOrder]:
    """내 교환 내역 (최신순)"""
    return shop_service.list_user_redemptions(current_user.id)
