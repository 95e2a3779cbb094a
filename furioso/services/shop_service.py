"""
상점 서비스 - 상품 관리와 코인 교환

교환(redeem)은 재고 차감, 주문 생성, 코인 차감을 하나의 DB 트랜잭션으로 묶습니다.
코인이 부족하면 재고와 주문도 함께 롤백됩니다.
"""

import logging
from math import ceil
from typing import List, Optional

from sqlalchemy.orm import Session

from furioso.config import Settings
from furioso.core.exceptions import (
    BusinessLogicError,
    ConflictError,
    NotFoundError,
    UserNotFoundError,
)
from furioso.models.audit import AuditAction, AuditEntityType
from furioso.models.coins import CoinTransactionType, RelatedEntityType
from furioso.models.shop import REDEMPTION_TRANSITIONS, RedemptionStatus
from furioso.repositories.shop_repository import (
    RedemptionOrderRepository,
    ShopItemRepository,
)
from furioso.repositories.user_repository import UserRepository
from furioso.schemas.coins import RelatedEntity
from furioso.schemas.shop import (
    RedemptionListResponse,
    RedemptionOrder,
    RedemptionRequest,
    RedemptionResult,
    RedemptionStatusUpdate,
    ShopItem,
    ShopItemCreate,
    ShopItemUpdate,
)
from furioso.schemas.user import User as UserSchema
from furioso.services.audit_service import AuditService
from furioso.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ShopService:
    """상점/교환 비즈니스 로직"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.item_repo = ShopItemRepository(db)
        self.order_repo = RedemptionOrderRepository(db)
        self.user_repo = UserRepository(db)
        self.ledger = LedgerService(db, settings)
        self.audit_service = AuditService(db)

    # ------------------------------------------------------------------
    # 상품
    # ------------------------------------------------------------------

    def list_items(self, active_only: bool = True) -> List[ShopItem]:
        return self.item_repo.list_items(active_only=active_only)

    def get_item(self, item_id: int) -> ShopItem:
        item = self.item_repo.get_by_id(item_id)
        if not item:
            raise NotFoundError(f"Shop item not found: {item_id}")
        return item

    def create_item(
        self,
        admin: UserSchema,
        request: ShopItemCreate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ShopItem:
        try:
            item = self.item_repo.create(commit=False, **request.model_dump())
            self.audit_service.log_action(
                admin_id=admin.id,
                admin_identity=admin.email,
                action=AuditAction.CREATE,
                entity_type=AuditEntityType.SHOP_ITEM,
                entity_id=item.id,
                details=request.model_dump(mode="json"),
                ip_address=ip_address,
                user_agent=user_agent,
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Admin {admin.id} created shop item {item.id} ({item.name})")
        return item

    def update_item(
        self,
        admin: UserSchema,
        item_id: int,
        request: ShopItemUpdate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ShopItem:
        changes = request.model_dump(exclude_unset=True)
        self.get_item(item_id)

        try:
            item = self.item_repo.update(item_id, commit=False, **changes)
            self.audit_service.log_action(
                admin_id=admin.id,
                admin_identity=admin.email,
                action=AuditAction.UPDATE,
                entity_type=AuditEntityType.SHOP_ITEM,
                entity_id=item_id,
                details=request.model_dump(mode="json", exclude_unset=True),
                ip_address=ip_address,
                user_agent=user_agent,
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Admin {admin.id} updated shop item {item_id}: {sorted(changes)}")
        return item

    # ------------------------------------------------------------------
    # 교환
    # ------------------------------------------------------------------

    def redeem(self, user_id: int, request: RedemptionRequest) -> RedemptionResult:
        """코인으로 상품 교환

        Raises:
            NotFoundError: 상품 없음
            BusinessLogicError: 판매 중지(SHOP_001) / 재고 부족(STOCK_001)
            InsufficientFundsError: 코인 부족 (재고/주문 롤백)
        """
        if not self.user_repo.exists({"id": user_id}):
            raise UserNotFoundError(user_id)

        item = self.get_item(request.shop_item_id)
        if not item.is_active:
            raise BusinessLogicError(
                error_code="SHOP_001",
                message=f"Item {item.id} is not available",
            )

        quantity = request.quantity
        coin_cost = item.coin_price * quantity

        try:
            if not self.item_repo.decrement_stock(item.id, quantity):
                raise BusinessLogicError(
                    error_code="STOCK_001",
                    message=f"Not enough stock for item {item.id}",
                    details={"item_id": item.id, "requested": quantity},
                )

            order = self.order_repo.create(
                commit=False,
                user_id=user_id,
                shop_item_id=item.id,
                quantity=quantity,
                coin_cost=coin_cost,
                status=RedemptionStatus.PENDING.value,
                shipping_data=request.shipping_data,
            )
            result = self.ledger.apply_transaction(
                user_id=user_id,
                amount=-coin_cost,
                transaction_type=CoinTransactionType.REDEMPTION.value,
                description=f"Redeemed {item.name} x{quantity}",
                related_entity=RelatedEntity.of(RelatedEntityType.REDEMPTION, order.id),
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"User {user_id} redeemed item {item.id} x{quantity} "
            f"for {coin_cost} coins (order {order.id})"
        )
        return RedemptionResult(order=order, balance=result.balance)

    def list_user_redemptions(self, user_id: int) -> List[RedemptionOrder]:
        return self.order_repo.list_for_user(user_id)

    def list_redemptions(
        self,
        status: Optional[RedemptionStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> RedemptionListResponse:
        limit = max(1, min(limit, self.settings.ADMIN_PAGE_MAX_LIMIT))
        orders, total = self.order_repo.list_orders(
            status.value if status else None, page, limit
        )
        return RedemptionListResponse(
            orders=orders,
            total_count=total,
            page=page,
            page_count=ceil(total / limit) if total else 0,
        )

    def update_redemption_status(
        self,
        admin: UserSchema,
        order_id: int,
        request: RedemptionStatusUpdate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> RedemptionOrder:
        """주문 상태 변경 - 취소 시 재고 복구 및 코인 환불"""
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Redemption order not found: {order_id}")

        current = RedemptionStatus(order.status)
        target = request.status
        if target not in REDEMPTION_TRANSITIONS[current]:
            raise BusinessLogicError(
                error_code="REDEMPTION_001",
                message=f"Cannot change status from {current.value} to {target.value}",
                details={"order_id": order_id},
            )

        try:
            if not self.order_repo.transition_status(
                order_id, current.value, target.value, request.processing_notes
            ):
                raise ConflictError(f"Redemption order {order_id} was modified concurrently")

            refunded = False
            if target == RedemptionStatus.CANCELLED:
                self.item_repo.restore_stock(order.shop_item_id, order.quantity)
                if self.settings.REFUND_ON_REDEMPTION_CANCEL:
                    self.ledger.apply_transaction(
                        user_id=order.user_id,
                        amount=order.coin_cost,
                        transaction_type=CoinTransactionType.REDEMPTION_REFUND.value,
                        description=f"Refund for cancelled redemption #{order_id}",
                        related_entity=RelatedEntity.of(RelatedEntityType.REDEMPTION, order_id),
                        idempotency_key=f"redemption_refund:{order_id}",
                        commit=False,
                    )
                    refunded = True

            self.audit_service.log_action(
                admin_id=admin.id,
                admin_identity=admin.email,
                action=AuditAction.UPDATE,
                entity_type=AuditEntityType.REDEMPTION_ORDER,
                entity_id=order_id,
                details={
                    "from": current.value,
                    "to": target.value,
                    "refunded": refunded,
                    "notes": request.processing_notes,
                },
                ip_address=ip_address,
                user_agent=user_agent,
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Admin {admin.id} moved redemption {order_id} {current.value} -> {target.value}"
        )
        return self.order_repo.get_fresh(order_id)
