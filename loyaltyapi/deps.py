from fastapi import Depends, Request
from sqlalchemy.orm import Session

from loyaltyapi.config import Settings, get_settings
from loyaltyapi.containers import Container
from loyaltyapi.database.session import get_db

# Services
from loyaltyapi.services.action_log_service import ActionLogService
from loyaltyapi.services.code_issuer_service import CodeIssuerService
from loyaltyapi.services.coupon_service import CouponService
from loyaltyapi.services.ledger_service import LedgerService
from loyaltyapi.services.verifier_service import VerifierService


def get_container(request: Request) -> Container:
    return request.app.container


def get_code_issuer_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    container: Container = Depends(get_container),
) -> CodeIssuerService:
    return container.services.code_issuer_service(db=db, settings=settings)


def get_ledger_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    container: Container = Depends(get_container),
) -> LedgerService:
    return container.services.ledger_service(db=db, settings=settings)


def get_verifier_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    container: Container = Depends(get_container),
) -> VerifierService:
    return container.services.verifier_service(db=db, settings=settings)


def get_action_log_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    container: Container = Depends(get_container),
) -> ActionLogService:
    return container.services.action_log_service(db=db, settings=settings)


def get_coupon_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    container: Container = Depends(get_container),
) -> CouponService:
    return container.services.coupon_service(db=db, settings=settings)
