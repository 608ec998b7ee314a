from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Roles carried in identity-provider claims"""

    CLIENT = "Client"
    STAFF = "Staff"
    OWNER = "Owner"

    @classmethod
    def parse(cls, role: Union[str, "UserRole", None]) -> "UserRole":
        """Missing role means a plain customer account"""
        if role is None or role == "":
            return cls.CLIENT
        if isinstance(role, cls):
            return role
        for member in cls:
            if member.value.lower() == str(role).lower():
                return member
        raise ValueError(f"Unknown role: {role}")

    @classmethod
    def is_staff_or_owner(cls, role: Union[str, "UserRole"]) -> bool:
        return cls.parse(role) in (cls.STAFF, cls.OWNER)


class Principal(BaseModel):
    """Authenticated actor, as asserted by the identity provider"""

    user_id: str = Field(..., min_length=1, description="Identity provider subject")
    email: Optional[str] = None
    role: UserRole = UserRole.CLIENT
    business_id: Optional[str] = Field(None, description="Business the staff/owner belongs to")

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_staff_or_owner(self) -> bool:
        return UserRole.is_staff_or_owner(self.role)

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER
