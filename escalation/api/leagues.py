from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from escalation.api.deps import get_current_user, unexpected_errors
from escalation.core.config import get_settings
from escalation.db.session import get_db
from escalation.models import League, LeagueMembership, LeagueStatus, MembershipStatus
from escalation.schemas.common import MessageOut
from escalation.schemas.leagues import (
    LeagueCreateData,
    LeagueCreateEnvelope,
    LeagueCreateIn,
    LeagueEnvelope,
    LeagueListEnvelope,
    LeagueOut,
    LeagueUpdateIn,
    MembershipOut,
    ShareUrlData,
    ShareUrlEnvelope,
)
from escalation.services.leagues import (
    create_league,
    delete_league,
    get_league,
    get_league_by_share_token,
    regenerate_share_token,
    update_league,
)
from escalation.services.membership import count_active_members

router = APIRouter(prefix="/leagues", tags=["leagues"])


def league_out(db: Session, league: League, member_count: int | None = None) -> LeagueOut:
    if member_count is None:
        member_count = count_active_members(db, league.id)
    return LeagueOut(
        id=league.id,
        name=league.name,
        description=league.description,
        status=league.status,
        is_private=league.is_private,
        has_password=bool(league.join_password_hash),
        max_players=league.max_players,
        member_count=member_count,
        created_by_user_id=league.created_by_user_id,
        created_at=league.created_at,
    )


@router.post("", response_model=LeagueCreateEnvelope)
def create(
    payload: LeagueCreateIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
) -> LeagueCreateEnvelope:
    with unexpected_errors("Failed to create league"):
        league, membership = create_league(
            db,
            user,
            name=payload.name,
            description=payload.description,
            is_private=payload.is_private,
            max_players=payload.max_players,
            join_password=payload.join_password,
        )
        data = LeagueCreateData(
            league=league_out(db, league, member_count=1),
            membership=MembershipOut.model_validate(membership),
            share_token=league.share_token,
        )
    return LeagueCreateEnvelope(message="League created successfully", data=data)


@router.get("/public", response_model=LeagueListEnvelope)
def list_public(db: Session = Depends(get_db)) -> LeagueListEnvelope:
    with unexpected_errors("Failed to fetch leagues"):
        counts = (
            select(LeagueMembership.league_id, func.count().label("members"))
            .where(LeagueMembership.status == MembershipStatus.ACTIVE.value)
            .group_by(LeagueMembership.league_id)
            .subquery()
        )
        rows = db.execute(
            select(League, func.coalesce(counts.c.members, 0))
            .outerjoin(counts, counts.c.league_id == League.id)
            .where(
                League.is_private.is_(False),
                League.status == LeagueStatus.ACTIVE.value,
            )
            .order_by(League.created_at.desc(), League.id.desc())
        ).all()
        data = [league_out(db, league, member_count=members) for league, members in rows]
    return LeagueListEnvelope(data=data)


@router.get("/info-by-token/{token}", response_model=LeagueEnvelope)
def info_by_token(token: str, db: Session = Depends(get_db)) -> LeagueEnvelope:
    with unexpected_errors("Failed to fetch league information"):
        league = get_league_by_share_token(db, token)
        data = league_out(db, league)
    return LeagueEnvelope(message="League information retrieved successfully", data=data)


@router.get("/{league_id}", response_model=LeagueEnvelope)
def read(league_id: int, db: Session = Depends(get_db)) -> LeagueEnvelope:
    with unexpected_errors("Failed to fetch league"):
        league = get_league(db, league_id)
        data = league_out(db, league)
    return LeagueEnvelope(data=data)


@router.patch("/{league_id}", response_model=LeagueEnvelope)
def patch(
    league_id: int,
    payload: LeagueUpdateIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
) -> LeagueEnvelope:
    with unexpected_errors("Failed to update league"):
        league = update_league(db, league_id, user.id, payload.model_dump(exclude_unset=True))
        data = league_out(db, league)
    return LeagueEnvelope(message="League updated successfully", data=data)


@router.delete("/{league_id}", response_model=MessageOut)
def remove(
    league_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
) -> MessageOut:
    with unexpected_errors("Failed to delete league"):
        delete_league(db, league_id, user.id)
    return MessageOut(message="League deleted successfully")


@router.post("/{league_id}/share-url", response_model=ShareUrlEnvelope)
def share_url(
    league_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    origin: str | None = Header(default=None),
) -> ShareUrlEnvelope:
    with unexpected_errors("Failed to generate share URL"):
        league = regenerate_share_token(db, league_id, user.id)
    base_url = (origin or get_settings().SITE_URL).rstrip("/")
    return ShareUrlEnvelope(
        message="Share URL generated successfully",
        data=ShareUrlData(
            share_url=f"{base_url}/join/{league.share_token}",
            share_token=league.share_token,
        ),
    )
