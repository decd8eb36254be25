from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from escalation.schemas.common import CamelModel


class LeagueCreateIn(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_private: bool = True
    max_players: Optional[int] = None
    join_password: Optional[str] = None


class LeagueUpdateIn(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_private: Optional[bool] = None
    max_players: Optional[int] = None
    join_password: Optional[str] = None
    status: Optional[str] = None


class LeagueOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    status: str
    is_private: bool
    has_password: bool
    max_players: Optional[int] = None
    member_count: int = 0
    created_by_user_id: Optional[int] = None
    created_at: datetime


class MembershipOut(CamelModel):
    id: int
    league_id: int
    user_id: int
    player_id: Optional[int] = None
    role: str
    status: str
    joined_at: datetime


class LeagueCreateData(CamelModel):
    league: LeagueOut
    membership: MembershipOut
    share_token: Optional[str] = None


class LeagueCreateEnvelope(CamelModel):
    success: bool = True
    message: str
    data: LeagueCreateData


class LeagueEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: LeagueOut


class ShareUrlData(CamelModel):
    share_url: str
    share_token: str


class ShareUrlEnvelope(CamelModel):
    success: bool = True
    message: str
    data: ShareUrlData


class LeagueListEnvelope(CamelModel):
    success: bool = True
    data: List[LeagueOut]
