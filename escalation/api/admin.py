from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from escalation.api.deps import require_admin, unexpected_errors
from escalation.db.session import get_db
from escalation.models import ActionLog, League, LeagueMembership, User
from escalation.schemas.admin import (
    AdminActionLogOut,
    AdminLeagueMemberOut,
    AdminLeagueOut,
    AdminMembershipUpdateIn,
)
from escalation.schemas.leagues import MembershipOut
from escalation.services.membership import update_membership

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/leagues", response_model=List[AdminLeagueOut])
def list_leagues(db: Session = Depends(get_db)) -> List[AdminLeagueOut]:
    leagues = (
        db.execute(select(League).order_by(League.created_at.desc(), League.id.desc()))
        .scalars()
        .all()
    )
    if not leagues:
        return []

    league_ids = [league.id for league in leagues]
    member_rows = (
        db.execute(
            select(LeagueMembership, User)
            .outerjoin(User, User.id == LeagueMembership.user_id)
            .where(LeagueMembership.league_id.in_(league_ids))
            .order_by(LeagueMembership.joined_at, LeagueMembership.id)
        )
        .all()
    )
    member_map: Dict[int, List[AdminLeagueMemberOut]] = {league_id: [] for league_id in league_ids}
    for member, user in member_rows:
        member_map[member.league_id].append(
            AdminLeagueMemberOut(
                membership_id=member.id,
                user_id=member.user_id,
                user_email=user.email if user else None,
                role=member.role,
                status=member.status,
                joined_at=member.joined_at,
            )
        )

    return [
        AdminLeagueOut(
            id=league.id,
            name=league.name,
            status=league.status,
            is_private=league.is_private,
            max_players=league.max_players,
            created_at=league.created_at,
            members=member_map.get(league.id, []),
        )
        for league in leagues
    ]


@router.get("/logs", response_model=List[AdminActionLogOut])
def list_logs(
    category: Optional[str] = Query(default=None),
    league_id: Optional[int] = Query(default=None, alias="leagueId"),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[AdminActionLogOut]:
    query = (
        select(ActionLog, User)
        .outerjoin(User, User.id == ActionLog.actor_user_id)
        .order_by(ActionLog.created_at.desc(), ActionLog.id.desc())
        .limit(limit)
    )
    if category:
        query = query.where(ActionLog.category == category)
    if league_id is not None:
        query = query.where(ActionLog.league_id == league_id)
    rows = db.execute(query).all()
    return [
        AdminActionLogOut(
            id=log.id,
            category=log.category,
            action=log.action,
            created_at=log.created_at,
            actor_user_id=log.actor_user_id,
            actor_email=user.email if user else None,
            league_id=log.league_id,
            target_user_id=log.target_user_id,
            details=log.details,
        )
        for log, user in rows
    ]


@router.put("/league-memberships/{membership_id}", response_model=MembershipOut)
def edit_membership(
    membership_id: int,
    payload: AdminMembershipUpdateIn,
    db: Session = Depends(get_db),
) -> MembershipOut:
    with unexpected_errors("Failed to update membership"):
        membership = update_membership(db, membership_id, payload.model_dump(exclude_unset=True))
        return MembershipOut.model_validate(membership)
