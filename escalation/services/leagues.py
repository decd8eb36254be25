from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from escalation.core.errors import BadRequest, InternalError, NotFound
from escalation.core.security import (
    generate_share_token,
    get_password_hash,
    is_valid_share_token,
)
from escalation.models import (
    ActionLog,
    League,
    LeagueMembership,
    LeagueStatus,
    MembershipRole,
    MembershipStatus,
    Player,
    User,
)
from escalation.services.action_log import log_action
from escalation.services.membership import lock_league, require_league_role

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "is_private", "max_players", "join_password", "status")
MANAGER_ROLES = {MembershipRole.OWNER, MembershipRole.ORGANIZER}


def get_league(db: Session, league_id: int) -> League:
    league = db.get(League, league_id)
    if league is None:
        raise NotFound("League not found")
    return league


def get_league_by_share_token(db: Session, token: str) -> League:
    if not is_valid_share_token(token):
        raise BadRequest("Invalid share token")
    league = db.execute(
        select(League).where(League.share_token == token.lower())
    ).scalar_one_or_none()
    if league is None:
        raise NotFound("League not found")
    return league


def _unique_share_token(db: Session) -> str:
    for _ in range(5):
        token = generate_share_token()
        exists = db.execute(select(League.id).where(League.share_token == token)).first()
        if not exists:
            return token
    raise InternalError("Failed to generate share token")


def _clean_max_players(value: int | None) -> int | None:
    if value is None:
        return None
    if value < 1:
        raise BadRequest("maxPlayers must be at least 1")
    return value


def create_league(
    db: Session,
    user: User,
    *,
    name: str | None,
    description: str | None = None,
    is_private: bool = True,
    max_players: int | None = None,
    join_password: str | None = None,
) -> Tuple[League, LeagueMembership]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise BadRequest("Missing required field: name")

    league = League(
        name=clean_name,
        description=description or None,
        status=LeagueStatus.ACTIVE.value,
        is_private=is_private,
        share_token=_unique_share_token(db) if is_private else None,
        join_password_hash=get_password_hash(join_password) if join_password else None,
        max_players=_clean_max_players(max_players),
        created_by_user_id=user.id,
    )
    db.add(league)
    db.flush()

    membership = LeagueMembership(
        league_id=league.id,
        user_id=user.id,
        player_id=None,
        role=MembershipRole.OWNER.value,
        status=MembershipStatus.ACTIVE.value,
    )
    db.add(membership)
    log_action(
        db,
        category="league",
        action="create",
        actor_user_id=user.id,
        league_id=league.id,
        details={"name": clean_name, "is_private": is_private},
    )
    db.commit()
    db.refresh(league)
    db.refresh(membership)
    logger.info("league_create league_id=%s user_id=%s", league.id, user.id)
    return league, membership


def update_league(
    db: Session,
    league_id: int,
    actor_user_id: int,
    changes: Dict[str, Any],
) -> League:
    league = lock_league(db, league_id)
    if league is None:
        raise NotFound("League not found")
    require_league_role(db, league_id, actor_user_id, MANAGER_ROLES)

    updates = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
    if not updates:
        raise BadRequest("No fields to update")

    if "name" in updates:
        clean_name = (updates["name"] or "").strip()
        if not clean_name:
            raise BadRequest("League name cannot be empty")
        league.name = clean_name
    if "description" in updates:
        league.description = updates["description"] or None
    if "is_private" in updates and updates["is_private"] is not None:
        league.is_private = bool(updates["is_private"])
        if not league.is_private:
            league.share_token = None
        elif not league.share_token:
            league.share_token = _unique_share_token(db)
    if "max_players" in updates:
        league.max_players = _clean_max_players(updates["max_players"])
    if "join_password" in updates:
        password = updates["join_password"]
        league.join_password_hash = get_password_hash(password) if password else None
    if "status" in updates:
        try:
            league.status = LeagueStatus(updates["status"]).value
        except ValueError:
            raise BadRequest("Invalid status. Must be active or archived") from None

    log_action(
        db,
        category="league",
        action="update",
        actor_user_id=actor_user_id,
        league_id=league_id,
        details={"fields": sorted(updates)},
    )
    db.commit()
    db.refresh(league)
    return league


def delete_league(db: Session, league_id: int, actor_user_id: int) -> None:
    league = lock_league(db, league_id)
    if league is None:
        raise NotFound("League not found")
    require_league_role(db, league_id, actor_user_id, {MembershipRole.OWNER})
    league_name = league.name

    db.execute(
        update(ActionLog).where(ActionLog.league_id == league_id).values(league_id=None)
    )
    db.execute(delete(LeagueMembership).where(LeagueMembership.league_id == league_id))
    db.execute(delete(Player).where(Player.league_id == league_id))
    db.execute(delete(League).where(League.id == league_id))
    log_action(
        db,
        category="league",
        action="delete",
        actor_user_id=actor_user_id,
        details={"league_id": league_id, "name": league_name},
    )
    db.commit()
    logger.info("league_delete league_id=%s user_id=%s", league_id, actor_user_id)


def regenerate_share_token(db: Session, league_id: int, actor_user_id: int) -> League:
    league = lock_league(db, league_id)
    if league is None:
        raise NotFound("League not found")
    require_league_role(db, league_id, actor_user_id, MANAGER_ROLES)

    league.share_token = _unique_share_token(db)
    log_action(
        db,
        category="league",
        action="share_url",
        actor_user_id=actor_user_id,
        league_id=league_id,
    )
    db.commit()
    db.refresh(league)
    return league
