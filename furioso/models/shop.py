from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)

from furioso.models.base import BaseModel, BigIntId


class RedemptionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 허용되는 상태 전이
REDEMPTION_TRANSITIONS = {
    RedemptionStatus.PENDING: {RedemptionStatus.PROCESSING, RedemptionStatus.CANCELLED},
    RedemptionStatus.PROCESSING: {RedemptionStatus.SHIPPED, RedemptionStatus.CANCELLED},
    RedemptionStatus.SHIPPED: {RedemptionStatus.COMPLETED, RedemptionStatus.CANCELLED},
    RedemptionStatus.COMPLETED: set(),
    RedemptionStatus.CANCELLED: set(),
}


class ShopItem(BaseModel):
    __tablename__ = "shop_items"
    __table_args__ = (
        CheckConstraint("coin_price > 0", name="ck_shop_items_price_positive"),
        CheckConstraint("stock IS NULL OR stock >= 0", name="ck_shop_items_stock"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(Text)
    coin_price = Column(Integer, nullable=False)
    item_type = Column(String(50), nullable=False)  # physical, digital ...
    stock = Column(Integer)  # NULL = 무제한
    is_active = Column(Boolean, nullable=False, default=True)


class RedemptionOrder(BaseModel):
    __tablename__ = "redemption_orders"
    __table_args__ = (
        Index("idx_redemption_orders_user", "user_id", "created_at"),
        Index("idx_redemption_orders_status", "status"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigIntId, ForeignKey("users.id"), nullable=False)
    shop_item_id = Column(BigIntId, ForeignKey("shop_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    coin_cost = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=RedemptionStatus.PENDING.value)
    shipping_data = Column(JSON)
    processing_notes = Column(Text)
