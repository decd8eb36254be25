from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from escalation.schemas.common import CamelModel
from escalation.schemas.leagues import LeagueOut, MembershipOut


class JoinIn(CamelModel):
    user_id: Optional[int] = None
    password: Optional[str] = None


class LeaveIn(CamelModel):
    user_id: Optional[int] = None


class TokenJoinIn(CamelModel):
    user_id: Optional[int] = None


class RoleChangeIn(CamelModel):
    new_role: Optional[str] = None


class TransferOwnershipIn(CamelModel):
    new_owner_user_id: Optional[int] = None


class PlayerCreateIn(CamelModel):
    user_id: Optional[int] = None
    name: Optional[str] = None
    faction: Optional[str] = None
    army_name: Optional[str] = None


class PlayerOut(CamelModel):
    id: int
    league_id: int
    user_id: int
    name: str
    faction: Optional[str] = None
    army_name: Optional[str] = None
    created_at: datetime


class MemberUserOut(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    picture: Optional[str] = None


class MemberOut(CamelModel):
    user_id: int
    player_id: Optional[int] = None
    role: str
    status: str
    joined_at: datetime
    user: Optional[MemberUserOut] = None
    player: Optional[PlayerOut] = None


class MembershipData(CamelModel):
    membership: MembershipOut


class MembershipEnvelope(CamelModel):
    success: bool = True
    message: str
    data: MembershipData


class TokenJoinData(CamelModel):
    league: LeagueOut
    membership: MembershipOut


class TokenJoinEnvelope(CamelModel):
    success: bool = True
    message: str
    data: TokenJoinData


class MembershipDetailOut(MembershipOut):
    player: Optional[PlayerOut] = None


class MembershipDetailEnvelope(CamelModel):
    success: bool = True
    data: Optional[MembershipDetailOut] = None


class MemberListEnvelope(CamelModel):
    success: bool = True
    data: List[MemberOut]
    count: int


class MemberRoleEnvelope(CamelModel):
    success: bool = True
    message: str
    data: MembershipOut


class PlayerCreateData(CamelModel):
    membership: MembershipOut
    player: PlayerOut


class PlayerCreateEnvelope(CamelModel):
    success: bool = True
    message: str
    data: PlayerCreateData
