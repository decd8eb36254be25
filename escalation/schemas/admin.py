from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from escalation.schemas.common import CamelModel


class AdminLeagueMemberOut(CamelModel):
    membership_id: int
    user_id: int
    user_email: Optional[str] = None
    role: str
    status: str
    joined_at: datetime


class AdminLeagueOut(CamelModel):
    id: int
    name: str
    status: str
    is_private: bool
    max_players: Optional[int] = None
    created_at: datetime
    members: List[AdminLeagueMemberOut]


class AdminActionLogOut(CamelModel):
    id: int
    category: str
    action: str
    created_at: datetime
    actor_user_id: Optional[int] = None
    actor_email: Optional[str] = None
    league_id: Optional[int] = None
    target_user_id: Optional[int] = None
    details: Optional[str] = None


class AdminMembershipUpdateIn(CamelModel):
    role: Optional[str] = None
    status: Optional[str] = None
    player_id: Optional[int] = None
