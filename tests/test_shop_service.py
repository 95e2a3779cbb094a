import pytest
from sqlalchemy import select

from furioso.config import settings
from furioso.core.exceptions import (
    BusinessLogicError,
    InsufficientFundsError,
    NotFoundError,
)
from furioso.models import AuditLog, RedemptionOrder, RedemptionStatus, ShopItem, UserRole
from furioso.schemas.shop import (
    RedemptionRequest,
    RedemptionStatusUpdate,
    ShopItemCreate,
    ShopItemUpdate,
)
from furioso.services.shop_service import ShopService


@pytest.fixture
def shop_service(db_session):
    return ShopService(db_session, settings)


@pytest.fixture
def funded_user(make_user, shop_service):
    user = make_user()
    shop_service.ledger.apply_transaction(user.id, 100, "signup_bonus", "Welcome")
    return user


@pytest.fixture
def editor(make_user, as_schema):
    return as_schema(make_user(role=UserRole.EDITOR))


def _stock(db_session, item_id):
    return db_session.execute(
        select(ShopItem.stock).where(ShopItem.id == item_id)
    ).scalar_one()


class TestRedeem:
    def test_redeem_debits_coins_and_stock(self, shop_service, funded_user, make_item, db_session):
        item = make_item(coin_price=30, stock=5)

        result = shop_service.redeem(
            funded_user.id, RedemptionRequest(shop_item_id=item.id, quantity=2)
        )

        assert result.order.status == RedemptionStatus.PENDING
        assert result.order.coin_cost == 60
        assert result.balance.balance == 40
        assert _stock(db_session, item.id) == 3

        debit = shop_service.ledger.get_history(funded_user.id, limit=1)[0]
        assert debit.amount == -60
        assert debit.transaction_type == "redemption"
        assert debit.related_entity_type == "redemption"
        assert debit.related_entity_id == result.order.id

    def test_insufficient_funds_rolls_back_stock_and_order(
        self, shop_service, funded_user, make_item, db_session
    ):
        item = make_item(coin_price=80, stock=5)

        with pytest.raises(InsufficientFundsError):
            shop_service.redeem(
                funded_user.id, RedemptionRequest(shop_item_id=item.id, quantity=2)
            )

        assert _stock(db_session, item.id) == 5
        assert db_session.execute(select(RedemptionOrder)).scalars().all() == []
        assert shop_service.ledger.get_balance(funded_user.id).balance == 100

    def test_out_of_stock(self, shop_service, funded_user, make_item):
        item = make_item(coin_price=10, stock=1)

        with pytest.raises(BusinessLogicError) as exc_info:
            shop_service.redeem(
                funded_user.id, RedemptionRequest(shop_item_id=item.id, quantity=2)
            )
        assert exc_info.value.error_code == "STOCK_001"
        assert shop_service.ledger.get_balance(funded_user.id).balance == 100

    def test_unlimited_stock_stays_unlimited(self, shop_service, funded_user, make_item, db_session):
        item = make_item(coin_price=10, stock=None)

        shop_service.redeem(funded_user.id, RedemptionRequest(shop_item_id=item.id))

        assert _stock(db_session, item.id) is None

    def test_inactive_or_missing_item(self, shop_service, funded_user, make_item):
        item = make_item(is_active=False)

        with pytest.raises(BusinessLogicError) as exc_info:
            shop_service.redeem(funded_user.id, RedemptionRequest(shop_item_id=item.id))
        assert exc_info.value.error_code == "SHOP_001"

        with pytest.raises(NotFoundError):
            shop_service.redeem(funded_user.id, RedemptionRequest(shop_item_id=999))


class TestRedemptionStatus:
    def _order(self, shop_service, user, make_item, stock=5):
        item = make_item(coin_price=30, stock=stock)
        return item, shop_service.redeem(
            user.id, RedemptionRequest(shop_item_id=item.id)
        ).order

    def test_happy_path_to_completed(self, shop_service, funded_user, make_item, editor):
        _, order = self._order(shop_service, funded_user, make_item)

        for status in ("processing", "shipped", "completed"):
            order = shop_service.update_redemption_status(
                editor, order.id, RedemptionStatusUpdate(status=status)
            )
        assert order.status == RedemptionStatus.COMPLETED
        assert shop_service.ledger.get_balance(funded_user.id).balance == 70

    def test_invalid_transition(self, shop_service, funded_user, make_item, editor):
        _, order = self._order(shop_service, funded_user, make_item)

        with pytest.raises(BusinessLogicError) as exc_info:
            shop_service.update_redemption_status(
                editor, order.id, RedemptionStatusUpdate(status="completed")
            )
        assert exc_info.value.error_code == "REDEMPTION_001"

    def test_cancel_refunds_and_restores_stock(
        self, shop_service, funded_user, make_item, editor, db_session
    ):
        item, order = self._order(shop_service, funded_user, make_item, stock=5)
        assert _stock(db_session, item.id) == 4

        cancelled = shop_service.update_redemption_status(
            editor,
            order.id,
            RedemptionStatusUpdate(status="cancelled", processing_notes="Out of size"),
        )

        assert cancelled.status == RedemptionStatus.CANCELLED
        assert cancelled.processing_notes == "Out of size"
        assert _stock(db_session, item.id) == 5
        balance = shop_service.ledger.get_balance(funded_user.id)
        assert (balance.balance, balance.lifetime_earned, balance.lifetime_spent) == (100, 130, 30)

        refund = shop_service.ledger.get_history(funded_user.id, limit=1)[0]
        assert refund.transaction_type == "redemption_refund"
        assert refund.idempotency_key == f"redemption_refund:{order.id}"

        with pytest.raises(BusinessLogicError):
            shop_service.update_redemption_status(
                editor, order.id, RedemptionStatusUpdate(status="cancelled")
            )

    def test_cancel_without_refund(self, db_session, funded_user, make_item, editor):
        no_refund = ShopService(
            db_session, settings.model_copy(update={"REFUND_ON_REDEMPTION_CANCEL": False})
        )
        _, order = self._order(no_refund, funded_user, make_item)

        no_refund.update_redemption_status(
            editor, order.id, RedemptionStatusUpdate(status="cancelled")
        )

        assert no_refund.ledger.get_balance(funded_user.id).balance == 70

    def test_status_change_is_audited(self, shop_service, funded_user, make_item, editor, db_session):
        _, order = self._order(shop_service, funded_user, make_item)

        shop_service.update_redemption_status(
            editor, order.id, RedemptionStatusUpdate(status="processing")
        )

        audit = db_session.execute(select(AuditLog)).scalar_one()
        assert audit.entity_type == "redemption_order"
        assert audit.entity_id == str(order.id)
        assert audit.details == {"from": "pending", "to": "processing", "refunded": False, "notes": None}

    def test_list_redemptions(self, shop_service, funded_user, make_item):
        self._order(shop_service, funded_user, make_item)
        self._order(shop_service, funded_user, make_item)

        mine = shop_service.list_user_redemptions(funded_user.id)
        assert len(mine) == 2
        assert mine[0].id > mine[1].id

        pending = shop_service.list_redemptions(status=RedemptionStatus.PENDING, limit=1)
        assert pending.total_count == 2
        assert pending.page_count == 2
        assert len(pending.orders) == 1


class TestItems:
    def test_create_and_update_item(self, shop_service, editor, db_session):
        item = shop_service.create_item(
            editor,
            ShopItemCreate(name="Jersey", description="Home jersey", coin_price=500, stock=3),
        )
        updated = shop_service.update_item(editor, item.id, ShopItemUpdate(coin_price=450))

        assert updated.coin_price == 450
        assert updated.stock == 3
        actions = [log.action for log in db_session.execute(select(AuditLog)).scalars()]
        assert sorted(actions) == ["create", "update"]

    def test_list_items(self, shop_service, make_item):
        make_item(name="Cap")
        make_item(name="Retired", is_active=False)

        assert [i.name for i in shop_service.list_items()] == ["Cap"]
        assert len(shop_service.list_items(active_only=False)) == 2

    def test_get_missing_item(self, shop_service):
        with pytest.raises(NotFoundError):
            shop_service.get_item(404)
