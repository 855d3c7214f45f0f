from enum import Enum
from dataclasses import dataclass


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    GUEST = "GUEST"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, as supplied by the identity provider."""

    user_id: str
    role: UserRole = UserRole.GUEST

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
