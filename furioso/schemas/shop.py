from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from furioso.models.shop import RedemptionStatus
from furioso.schemas.coins import CoinBalanceResponse


class ShopItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    image_url: Optional[str] = None
    coin_price: int
    item_type: str
    stock: Optional[int] = Field(None, description="남은 재고 (null = 무제한)")
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class ShopItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    coin_price: int = Field(..., gt=0)
    item_type: str = Field("physical", min_length=1, max_length=50)
    stock: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class ShopItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    coin_price: Optional[int] = Field(None, gt=0)
    item_type: Optional[str] = Field(None, min_length=1, max_length=50)
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class RedemptionOrder(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    shop_item_id: int
    quantity: int
    coin_cost: int
    status: RedemptionStatus
    shipping_data: Optional[Dict[str, Any]] = None
    processing_notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class RedemptionRequest(BaseModel):
    """상품 교환 요청"""

    shop_item_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1, le=100)
    shipping_data: Optional[Dict[str, Any]] = Field(
        None, description="배송 정보 (실물 상품)"
    )


class RedemptionResult(BaseModel):
    order: RedemptionOrder
    balance: CoinBalanceResponse


class RedemptionStatusUpdate(BaseModel):
    status: RedemptionStatus
    processing_notes: Optional[str] = Field(None, max_length=1000)


class RedemptionListResponse(BaseModel):
    orders: List[RedemptionOrder]
    total_count: int
    page: int
    page_count: int
