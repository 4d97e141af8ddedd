from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    CARE_WORKER = "CARE_WORKER"
    MANAGER = "MANAGER"


# Who is calling, resolved once per request from the identity provider
@dataclass(frozen=True)
class RequestContext:
    worker_id: str
    role: UserRole
    organization_id: str
    name: str = ""
    email: Optional[str] = None

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER
