from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from loyaltyapi.models.staff_action import StaffAction, StaffActionType
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.schemas.staff import StaffActionEntry
from loyaltyapi.utils.timezone_utils import utc_now


class StaffActionRepository(BaseRepository[StaffAction, StaffActionEntry]):
    """Append-only: rows are inserted and read, never updated or deleted."""

    def __init__(self, db: Session):
        super().__init__(StaffAction, StaffActionEntry, db)

    def append(
        self,
        staff_user_id: str,
        business_id: str,
        action_type: StaffActionType,
        action_details: Optional[Dict[str, Any]] = None,
    ) -> StaffAction:
        return self.create(
            staff_user_id=staff_user_id,
            business_id=business_id,
            action_type=action_type,
            action_details=action_details or {},
            performed_at=utc_now(),
        )

    def list_actions(
        self,
        business_id: str,
        staff_user_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[StaffActionEntry]:
        """Newest first; restricted to one staff member when given"""
        query = self.db.query(StaffAction).filter(StaffAction.business_id == business_id)
        if staff_user_id is not None:
            query = query.filter(StaffAction.staff_user_id == staff_user_id)

        actions = (
            query.order_by(desc(StaffAction.performed_at), desc(StaffAction.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._to_schema(action) for action in actions]

    def count_actions(self, business_id: str, staff_user_id: Optional[str] = None) -> int:
        filters: Dict[str, Any] = {"business_id": business_id}
        if staff_user_id is not None:
            filters["staff_user_id"] = staff_user_id
        return self.count(filters)
