from dependency_injector import containers, providers

from loyaltyapi.config import get_settings
from loyaltyapi.services.action_log_service import ActionLogService
from loyaltyapi.services.code_issuer_service import CodeIssuerService
from loyaltyapi.services.coupon_service import CouponService
from loyaltyapi.services.ledger_service import LedgerService
from loyaltyapi.services.verifier_service import VerifierService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(get_settings)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer factories.

    The request-scoped session is passed in at call time (see deps.py).
    """

    config = providers.DependenciesContainer()

    action_log_service = providers.Factory(ActionLogService, settings=config.config)
    code_issuer_service = providers.Factory(CodeIssuerService, settings=config.config)
    coupon_service = providers.Factory(CouponService, settings=config.config)
    ledger_service = providers.Factory(LedgerService, settings=config.config)
    verifier_service = providers.Factory(VerifierService, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    config = providers.Container(ConfigModule)
    services = providers.Container(ServiceModule, config=config)
