from dependency_injector import containers, providers

from furioso.config import Settings
from furioso.services.audit_service import AuditService
from furioso.services.ledger_service import LedgerService
from furioso.services.reward_service import CoinRewardService
from furioso.services.shop_service import ShopService
from furioso.services.user_service import UserService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies.

    요청 스코프 세션(db)은 호출 시점에 주입됩니다: ``services.ledger_service(db=db)``
    """

    config = providers.DependenciesContainer()

    ledger_service = providers.Factory(LedgerService, settings=config.config)
    audit_service = providers.Factory(AuditService)
    reward_service = providers.Factory(CoinRewardService, settings=config.config)
    user_service = providers.Factory(UserService, settings=config.config)
    shop_service = providers.Factory(ShopService, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    config = providers.Container(ConfigModule)
    services = providers.Container(ServiceModule, config=config)
