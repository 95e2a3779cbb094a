# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .coin_repository import CoinRepository
from .shop_repository import ShopItemRepository, RedemptionOrderRepository
from .audit_repository import AuditRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "CoinRepository",
    "ShopItemRepository",
    "RedemptionOrderRepository",
    "AuditRepository",
]
