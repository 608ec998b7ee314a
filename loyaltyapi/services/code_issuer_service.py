import logging
import secrets

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loyaltyapi.config import Settings
from loyaltyapi.core.exceptions import InternalServerError
from loyaltyapi.repositories.redemption_code_repository import RedemptionCodeRepository
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.qr_code import QRCodeResponse
from loyaltyapi.services.access import ensure_client
from loyaltyapi.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


class CodeIssuerService:
    """Issues the profile codes customers present to staff"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.code_repo = RedemptionCodeRepository(db)

    def _new_payload(self) -> str:
        return secrets.token_urlsafe(self.settings.QR_CODE_TOKEN_BYTES)

    def issue_or_fetch_code(self, principal: Principal) -> QRCodeResponse:
        """
        Return the caller's current unused code, creating one if none exists.

        Calling this repeatedly returns the same code until staff consume it.
        A consumed code is never handed out again.
        """
        ensure_client(principal, "Only customers can request a profile code")

        existing = self.code_repo.get_active_for_user(principal.user_id)
        if existing is not None:
            return self.code_repo._to_schema(existing)

        try:
            inserted = self.code_repo.insert_if_absent(
                principal.user_id, self._new_payload(), utc_now()
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to issue profile code for user {principal.user_id}: {str(e)}")
            raise InternalServerError("Error generating QR code")

        code = self.code_repo.get_active_for_user(principal.user_id)
        if code is None:
            # consumed between the insert and this read
            return self.issue_or_fetch_code(principal)
        if inserted:
            logger.info(f"Issued profile code {code.id} for user {principal.user_id}")
        return self.code_repo._to_schema(code)
