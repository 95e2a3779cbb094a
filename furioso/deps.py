from fastapi import Depends, Request
from sqlalchemy.orm import Session

from furioso.database.session import get_db

# Services
from furioso.services.audit_service import AuditService
from furioso.services.ledger_service import LedgerService
from furioso.services.reward_service import CoinRewardService
from furioso.services.shop_service import ShopService
from furioso.services.user_service import UserService


def get_ledger_service(request: Request, db: Session = Depends(get_db)) -> LedgerService:
    return request.app.container.services.ledger_service(db=db)


def get_reward_service(
    request: Request, db: Session = Depends(get_db)
) -> CoinRewardService:
    return request.app.container.services.reward_service(db=db)


def get_user_service(request: Request, db: Session = Depends(get_db)) -> UserService:
    return request.app.container.services.user_service(db=db)


def get_shop_service(request: Request, db: Session = Depends(get_db)) -> ShopService:
    return request.app.container.services.shop_service(db=db)


def get_audit_service(request: Request, db: Session = Depends(get_db)) -> AuditService:
    return request.app.container.services.audit_service(db=db)


def get_client_info(request: Request) -> dict:
    """감사 로그용 요청자 정보"""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
