"""관리자 감사 로그 - 추가 전용 테이블"""

from enum import Enum

from sqlalchemy import Column, Index, JSON, String, Text

from furioso.models.base import Base, BigIntId, CreatedAtMixin


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"
    EXPORT = "export"


class AuditEntityType(str, Enum):
    USER = "user"
    SHOP_ITEM = "shop_item"
    REDEMPTION_ORDER = "redemption_order"
    SURVEY = "survey"
    COIN_TRANSACTION = "coin_transaction"
    COIN_BALANCE = "coin_balance"
    COIN_METRICS = "coin_metrics"


class AuditLog(Base, CreatedAtMixin):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_logs_admin", "admin_id", "created_at"),
        Index("idx_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    admin_id = Column(BigIntId, nullable=False)
    admin_identity = Column(String(255), nullable=False)
    action = Column(String(30), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(100))
    details = Column(JSON)
    ip_address = Column(String(64))
    user_agent = Column(Text)
