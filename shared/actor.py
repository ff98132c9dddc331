"""
shared/actor.py
The "current actor" capability passed into every engine call.
Built once per request from the verified session and dropped when the
request ends; never cached in module state.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from shared.models.models import Profile, Role


@dataclass(frozen=True)
class Actor:
    id: uuid.UUID
    role: Role
    name: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "Actor":
        return cls(id=profile.id, role=profile.role, name=profile.full_name)

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPPORT)
