"""
core/identity.py
The authenticated caller, passed explicitly into every core operation.
"""

import uuid
from dataclasses import dataclass

from shared.models.models import User, UserRole


@dataclass(frozen=True)
class Actor:
    user_id: uuid.UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        match self.role:
            case UserRole.ADMIN:
                return True
            case UserRole.USER:
                return False
        raise ValueError(f"Unknown role: {self.role!r}")

    def owns(self, owner_id: uuid.UUID) -> bool:
        return self.user_id == owner_id

    def can_manage(self, owner_id: uuid.UUID) -> bool:
        """Owning actor or admin."""
        return self.owns(owner_id) or self.is_admin

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=UserRole(user.role))
