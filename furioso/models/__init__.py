from furioso.models.base import Base
from furioso.models.user import User, UserRole
from furioso.models.coins import (
    CoinBalance,
    CoinTransaction,
    CoinTransactionType,
    RelatedEntityType,
)
from furioso.models.shop import ShopItem, RedemptionOrder, RedemptionStatus
from furioso.models.audit import AuditLog, AuditAction, AuditEntityType

__all__ = [
    "Base",
    "User",
    "UserRole",
    "CoinBalance",
    "CoinTransaction",
    "CoinTransactionType",
    "RelatedEntityType",
    "ShopItem",
    "RedemptionOrder",
    "RedemptionStatus",
    "AuditLog",
    "AuditAction",
    "AuditEntityType",
]
