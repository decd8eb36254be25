from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from escalation.api.deps import enforce_join_rate_limit, get_current_user, unexpected_errors
from escalation.api.leagues import league_out
from escalation.core.errors import BadRequest, Forbidden
from escalation.db.session import get_db
from escalation.models import MembershipStatus, User
from escalation.schemas.common import MessageOut
from escalation.schemas.leagues import MembershipOut
from escalation.schemas.members import (
    JoinIn,
    LeaveIn,
    MemberListEnvelope,
    MemberOut,
    MemberRoleEnvelope,
    MemberUserOut,
    MembershipData,
    MembershipDetailEnvelope,
    MembershipDetailOut,
    MembershipEnvelope,
    PlayerCreateData,
    PlayerCreateEnvelope,
    PlayerCreateIn,
    PlayerOut,
    RoleChangeIn,
    TokenJoinData,
    TokenJoinEnvelope,
    TokenJoinIn,
    TransferOwnershipIn,
)
from escalation.services.membership import (
    change_member_role,
    create_player,
    get_membership_detail,
    join_league,
    join_league_by_token,
    leave_league,
    list_members,
    transfer_ownership,
)

router = APIRouter(prefix="/leagues", tags=["members"])


def _require(value, field: str):
    if value is None or value == "":
        raise BadRequest(f"Missing required field: {field}")
    return value


def _require_self(user: User, user_id: int) -> int:
    if user_id != user.id:
        raise Forbidden("You can only change your own membership")
    return user_id


@router.post("/{league_id}/join", response_model=MembershipEnvelope)
def join(
    league_id: int,
    payload: JoinIn,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MembershipEnvelope:
    user_id = _require_self(user, _require(payload.user_id, "userId"))
    enforce_join_rate_limit(request)
    with unexpected_errors("Failed to join league"):
        membership, reactivated = join_league(db, league_id, user_id, payload.password)
        data = MembershipData(membership=MembershipOut.model_validate(membership))
    message = "Membership reactivated" if reactivated else "Successfully joined league"
    return MembershipEnvelope(message=message, data=data)


@router.post("/join-by-token/{token}", response_model=TokenJoinEnvelope)
def join_by_token(
    token: str,
    payload: TokenJoinIn,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> TokenJoinEnvelope:
    user_id = _require_self(user, _require(payload.user_id, "userId"))
    enforce_join_rate_limit(request)
    with unexpected_errors("Failed to join league"):
        league, membership, reactivated = join_league_by_token(db, token, user_id)
        data = TokenJoinData(
            league=league_out(db, league),
            membership=MembershipOut.model_validate(membership),
        )
    message = "Membership reactivated" if reactivated else "Successfully joined league"
    return TokenJoinEnvelope(message=message, data=data)


@router.post("/{league_id}/leave", response_model=MessageOut)
def leave(
    league_id: int,
    payload: LeaveIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageOut:
    user_id = _require_self(user, _require(payload.user_id, "userId"))
    with unexpected_errors("Failed to leave league"):
        leave_league(db, league_id, user_id)
    return MessageOut(message="Successfully left league")


@router.get("/{league_id}/membership", response_model=MembershipDetailEnvelope)
def membership(
    league_id: int,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
) -> MembershipDetailEnvelope:
    _require(user_id, "userId")
    with unexpected_errors("Failed to fetch membership"):
        found = get_membership_detail(db, league_id, user_id)
        if found is None:
            return MembershipDetailEnvelope(data=None)
        row, player = found
        detail = MembershipDetailOut(
            **MembershipOut.model_validate(row).model_dump(),
            player=PlayerOut.model_validate(player) if player else None,
        )
    return MembershipDetailEnvelope(data=detail)


@router.get("/{league_id}/members", response_model=MemberListEnvelope)
def members(
    league_id: int,
    status: Optional[MembershipStatus] = Query(default=None),
    db: Session = Depends(get_db),
) -> MemberListEnvelope:
    with unexpected_errors("Failed to fetch league members"):
        rows = list_members(db, league_id, status)
        data = [
            MemberOut(
                user_id=row.user_id,
                player_id=row.player_id,
                role=row.role,
                status=row.status,
                joined_at=row.joined_at,
                user=MemberUserOut.model_validate(user) if user else None,
                player=PlayerOut.model_validate(player) if player else None,
            )
            for row, user, player in rows
        ]
    return MemberListEnvelope(data=data, count=len(data))


@router.patch("/{league_id}/members/{user_id}/role", response_model=MemberRoleEnvelope)
def change_role(
    league_id: int,
    user_id: int,
    payload: RoleChangeIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
) -> MemberRoleEnvelope:
    new_role = _require(payload.new_role, "newRole")
    with unexpected_errors("Failed to update member role"):
        updated = change_member_role(db, league_id, user.id, user_id, new_role)
        data = MembershipOut.model_validate(updated)
    return MemberRoleEnvelope(message="Member role updated successfully", data=data)


@router.post("/{league_id}/transfer-ownership", response_model=MessageOut)
def transfer(
    league_id: int,
    payload: TransferOwnershipIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
) -> MessageOut:
    new_owner_user_id = _require(payload.new_owner_user_id, "newOwnerUserId")
    with unexpected_errors("Failed to transfer ownership"):
        transfer_ownership(db, league_id, user.id, new_owner_user_id)
    return MessageOut(message="Ownership transferred successfully")


@router.post("/{league_id}/players", response_model=PlayerCreateEnvelope)
def add_player(
    league_id: int,
    payload: PlayerCreateIn,
    db: Session = Depends(get_db),
) -> PlayerCreateEnvelope:
    user_id = _require(payload.user_id, "userId")
    name = _require(payload.name, "name")
    with unexpected_errors("Failed to create player"):
        row, player = create_player(
            db,
            league_id,
            user_id,
            name=name,
            faction=payload.faction,
            army_name=payload.army_name,
        )
        data = PlayerCreateData(
            membership=MembershipOut.model_validate(row),
            player=PlayerOut.model_validate(player),
        )
    return PlayerCreateEnvelope(message="Player profile created", data=data)
