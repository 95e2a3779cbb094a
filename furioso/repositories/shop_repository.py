"""
상점 리포지토리 - 상품/교환 주문

재고 차감과 주문 상태 전이는 조건부 UPDATE로 수행되어
동시 요청에서도 재고가 음수가 되거나 상태가 두 번 전이되지 않습니다.
"""

from typing import List, Optional, Tuple

from sqlalchemy import case, desc, null, update
from sqlalchemy.orm import Session

from furioso.models.shop import (
    RedemptionOrder as RedemptionOrderModel,
    ShopItem as ShopItemModel,
)
from furioso.repositories.base import BaseRepository
from furioso.schemas.shop import (
    RedemptionOrder as RedemptionOrderSchema,
    ShopItem as ShopItemSchema,
)


class ShopItemRepository(BaseRepository[ShopItemModel, ShopItemSchema]):
    def __init__(self, db: Session):
        super().__init__(ShopItemModel, ShopItemSchema, db)

    def list_items(self, active_only: bool = True) -> List[ShopItemSchema]:
        filters = {"is_active": True} if active_only else None
        return self.find_all(filters=filters, order_by=ShopItemModel.id)

    def decrement_stock(self, item_id: int, quantity: int) -> bool:
        """재고 차감 (무제한 재고는 그대로). 재고 부족이면 False"""
        stmt = (
            update(ShopItemModel)
            .where(
                ShopItemModel.id == item_id,
                (ShopItemModel.stock.is_(None)) | (ShopItemModel.stock >= quantity),
            )
            .values(
                stock=case(
                    (ShopItemModel.stock.is_(None), null()),
                    else_=ShopItemModel.stock - quantity,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def restore_stock(self, item_id: int, quantity: int) -> None:
        stmt = (
            update(ShopItemModel)
            .where(ShopItemModel.id == item_id, ShopItemModel.stock.is_not(None))
            .values(stock=ShopItemModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)


class RedemptionOrderRepository(
    BaseRepository[RedemptionOrderModel, RedemptionOrderSchema]
):
    def __init__(self, db: Session):
        super().__init__(RedemptionOrderModel, RedemptionOrderSchema, db)

    def transition_status(
        self,
        order_id: int,
        from_status: str,
        to_status: str,
        processing_notes: Optional[str] = None,
    ) -> bool:
        """현재 상태가 from_status일 때만 전이. 경쟁에서 지면 False"""
        values = {"status": to_status}
        if processing_notes is not None:
            values["processing_notes"] = processing_notes
        stmt = (
            update(RedemptionOrderModel)
            .where(
                RedemptionOrderModel.id == order_id,
                RedemptionOrderModel.status == from_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def get_fresh(self, order_id: int) -> Optional[RedemptionOrderSchema]:
        instance = (
            self.db.query(RedemptionOrderModel)
            .filter(RedemptionOrderModel.id == order_id)
            .populate_existing()
            .first()
        )
        return self._to_schema(instance)

    def list_for_user(self, user_id: int) -> List[RedemptionOrderSchema]:
        return self.find_all(
            filters={"user_id": user_id},
            order_by=desc(RedemptionOrderModel.id),
        )

    def list_orders(
        self, status: Optional[str], page: int, limit: int
    ) -> Tuple[List[RedemptionOrderSchema], int]:
        filters = {"status": status} if status else None
        total = self.count(filters)
        orders = self.find_all(
            filters=filters,
            order_by=desc(RedemptionOrderModel.id),
            limit=limit,
            offset=(page - 1) * limit,
        )
        return orders, total
