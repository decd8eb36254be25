from datetime import datetime
from typing import List, Optional

from escalation.schemas.common import CamelModel
from escalation.schemas.leagues import MembershipOut


class UserOut(CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    created_at: datetime


class MeOut(CamelModel):
    success: bool = True
    user: UserOut
    memberships: List[MembershipOut]
