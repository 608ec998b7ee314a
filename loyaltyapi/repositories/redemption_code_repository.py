from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Row,
    String,
    desc,
    insert,
    literal,
    select,
    update,
)
from sqlalchemy.orm import Session

from loyaltyapi.models.base import generate_uuid
from loyaltyapi.models.redemption_code import RedemptionCode
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.schemas.qr_code import QRCodeResponse


class RedemptionCodeRepository(BaseRepository[RedemptionCode, QRCodeResponse]):
    """Profile codes (qr_codes table)"""

    def __init__(self, db: Session):
        super().__init__(RedemptionCode, QRCodeResponse, db)

    def _to_schema(self, model_instance: Optional[RedemptionCode]) -> Optional[QRCodeResponse]:
        if model_instance is None:
            return None

        return QRCodeResponse(
            id=model_instance.id,
            data=model_instance.payload,
            created_at=model_instance.issued_at,
        )

    def get_active_for_user(self, user_id: str) -> Optional[RedemptionCode]:
        """Most recent unused code of the user"""
        return (
            self.db.query(RedemptionCode)
            .filter(RedemptionCode.user_id == user_id, RedemptionCode.used.is_(False))
            .order_by(desc(RedemptionCode.issued_at))
            .first()
        )

    def get_by_payload(self, payload: str) -> Optional[RedemptionCode]:
        return (
            self.db.query(RedemptionCode)
            .filter(RedemptionCode.payload == payload)
            .first()
        )

    def insert_if_absent(self, user_id: str, payload: str, issued_at: datetime) -> bool:
        """
        Insert a new unused code unless the user already holds one.

        One ``INSERT ... SELECT ... WHERE NOT EXISTS`` statement. Writers that
        queue on the database lock (SQLite) never create a second code; under
        PostgreSQL READ COMMITTED two first-time requests may still both
        insert, which only leaves the user an extra valid code.
        """
        has_unused = (
            select(RedemptionCode.id)
            .where(RedemptionCode.user_id == user_id, RedemptionCode.used.is_(False))
            .correlate(None)
            .exists()
        )
        row = select(
            literal(generate_uuid(), String),
            literal(user_id, String),
            literal(payload, String),
            literal(False, Boolean),
            literal(issued_at, DateTime(timezone=True)),
        ).where(~has_unused)
        stmt = insert(RedemptionCode).from_select(
            ["id", "user_id", "payload", "used", "issued_at"], row
        )
        return self.db.execute(stmt).rowcount == 1

    def claim(self, payload: str, claimed_at: datetime) -> Optional[Row]:
        """
        Consume a code with one conditional UPDATE.

        ``used`` flips false -> true only for the first caller; the statement
        returns the claimed row (id, owner) or nothing when the code is
        unknown or already consumed.
        """
        stmt = (
            update(RedemptionCode)
            .where(RedemptionCode.payload == payload, RedemptionCode.used.is_(False))
            .values(used=True, used_at=claimed_at)
            .returning(RedemptionCode.id, RedemptionCode.user_id)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).first()

    def delete_for_user(self, user_id: str) -> int:
        return self.delete_where(user_id=user_id)
