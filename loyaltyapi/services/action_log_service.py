import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from loyaltyapi.config import Settings
from loyaltyapi.core.exceptions import AuthorizationError
from loyaltyapi.models.staff_action import StaffActionType
from loyaltyapi.repositories.staff_action_repository import StaffActionRepository
from loyaltyapi.schemas.auth import Principal
from loyaltyapi.schemas.staff import StaffActionHistoryResponse

logger = logging.getLogger(__name__)


class ActionLogService:
    """Audit trail of awards and verifications performed by staff"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.action_repo = StaffActionRepository(db)

    def record_action(
        self,
        principal: Principal,
        action_type: StaffActionType,
        action_details: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Append an audit row after the ledger change has committed.

        Best-effort: a failure here is logged and reported as False, the
        ledger change it describes stays in place.
        """
        try:
            self.action_repo.append(
                staff_user_id=principal.user_id,
                business_id=principal.business_id,
                action_type=action_type,
                action_details=action_details,
            )
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Failed to record {action_type.value} by {principal.user_id}: {str(e)}"
            )
            return False

    def get_action_history(
        self, principal: Principal, limit: int = 50, offset: int = 0
    ) -> StaffActionHistoryResponse:
        """Staff see their own actions, owners see the whole business"""
        if not principal.is_staff_or_owner or not principal.business_id:
            raise AuthorizationError("Only staff members can view action history")

        limit = max(1, min(limit, self.settings.ACTION_HISTORY_MAX_LIMIT))
        offset = max(0, offset)
        staff_user_id = None if principal.is_owner else principal.user_id

        actions = self.action_repo.list_actions(
            business_id=principal.business_id,
            staff_user_id=staff_user_id,
            limit=limit,
            offset=offset,
        )
        total_count = self.action_repo.count_actions(
            business_id=principal.business_id, staff_user_id=staff_user_id
        )
        return StaffActionHistoryResponse(
            actions=actions,
            total_count=total_count,
            has_next=offset + len(actions) < total_count,
        )
