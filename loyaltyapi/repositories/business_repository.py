from typing import Optional

from sqlalchemy.orm import Session

from loyaltyapi.models.business import Business
from loyaltyapi.repositories.base import BaseRepository
from loyaltyapi.schemas.business import BusinessItem


class BusinessRepository(BaseRepository[Business, BusinessItem]):
    def __init__(self, db: Session):
        super().__init__(Business, BusinessItem, db)

    def get(self, business_id: str) -> Optional[Business]:
        return self.get_model(business_id)
