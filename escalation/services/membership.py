from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from escalation.core.errors import (
    BadRequest,
    Conflict,
    Forbidden,
    InvalidState,
    NotFound,
    Unauthorized,
)
from escalation.core.security import is_valid_share_token, verify_password
from escalation.models import (
    League,
    LeagueMembership,
    LeagueStatus,
    MembershipRole,
    MembershipStatus,
    Player,
    User,
)
from escalation.services.action_log import log_action

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = {MembershipRole.ORGANIZER, MembershipRole.PLAYER}


def lock_league(db: Session, league_id: int) -> League | None:
    # Row lock serializes concurrent joins/leaves on PostgreSQL; SQLite ignores it.
    return db.execute(
        select(League).where(League.id == league_id).with_for_update()
    ).scalar_one_or_none()


def get_membership(db: Session, league_id: int, user_id: int) -> LeagueMembership | None:
    return db.execute(
        select(LeagueMembership).where(
            LeagueMembership.league_id == league_id,
            LeagueMembership.user_id == user_id,
        )
    ).scalar_one_or_none()


def count_active_members(
    db: Session, league_id: int, *, exclude_user_id: int | None = None
) -> int:
    query = (
        select(func.count())
        .select_from(LeagueMembership)
        .where(
            LeagueMembership.league_id == league_id,
            LeagueMembership.status == MembershipStatus.ACTIVE.value,
        )
    )
    if exclude_user_id is not None:
        query = query.where(LeagueMembership.user_id != exclude_user_id)
    return db.execute(query).scalar_one()


def require_league_role(
    db: Session,
    league_id: int,
    user_id: int,
    allowed: Iterable[MembershipRole],
) -> LeagueMembership:
    membership = get_membership(db, league_id, user_id)
    if membership is None or membership.status != MembershipStatus.ACTIVE:
        raise Forbidden("You are not a member of this league")
    if MembershipRole(membership.role) not in set(allowed):
        raise Forbidden("Insufficient league permissions")
    return membership


def _check_join_password(league: League, password: str | None) -> None:
    if not league.join_password_hash:
        return
    if not password:
        raise BadRequest("Password required to join this league")
    if not verify_password(password, league.join_password_hash):
        raise Unauthorized("Incorrect league password")


def _require_open(league: League) -> None:
    if league.status != LeagueStatus.ACTIVE:
        raise InvalidState("League is not accepting new members")


def _require_capacity(db: Session, league: League) -> None:
    if league.max_players and count_active_members(db, league.id) >= league.max_players:
        raise InvalidState("League is full")


def _enroll(
    db: Session,
    league: League,
    user_id: int,
    *,
    password: str | None,
    via_invite: bool,
) -> Tuple[LeagueMembership, bool]:
    _require_open(league)

    existing = get_membership(db, league.id, user_id)
    if existing is not None:
        if existing.status == MembershipStatus.ACTIVE:
            raise Conflict("Already a member of this league")
        existing.status = MembershipStatus.ACTIVE.value
        log_action(
            db,
            category="membership",
            action="rejoin",
            actor_user_id=user_id,
            league_id=league.id,
            details={"membership_id": existing.id},
        )
        db.commit()
        db.refresh(existing)
        logger.info("league_rejoin league_id=%s user_id=%s", league.id, user_id)
        return existing, True

    if not via_invite:
        _check_join_password(league, password)

    _require_capacity(db, league)

    if db.get(User, user_id) is None:
        raise NotFound("User not found")

    membership = LeagueMembership(
        league_id=league.id,
        user_id=user_id,
        player_id=None,
        role=MembershipRole.PLAYER.value,
        status=MembershipStatus.ACTIVE.value,
    )
    db.add(membership)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Already a member of this league") from exc

    log_action(
        db,
        category="membership",
        action="join_invite" if via_invite else "join",
        actor_user_id=user_id,
        league_id=league.id,
        details={"membership_id": membership.id},
    )
    db.commit()
    db.refresh(membership)
    logger.info(
        "league_join league_id=%s user_id=%s via_invite=%s", league.id, user_id, via_invite
    )
    return membership, False


def join_league(
    db: Session,
    league_id: int,
    user_id: int,
    password: str | None = None,
) -> Tuple[LeagueMembership, bool]:
    """Add ``user_id`` to a league, or reactivate their earlier membership.

    Returns the membership and whether it was a reactivation. Returning
    members skip the password and capacity checks.
    """
    league = lock_league(db, league_id)
    if league is None:
        raise NotFound("League not found")
    return _enroll(db, league, user_id, password=password, via_invite=False)


def join_league_by_token(
    db: Session, token: str, user_id: int
) -> Tuple[League, LeagueMembership, bool]:
    if not is_valid_share_token(token):
        raise BadRequest("Invalid share token")
    league = db.execute(
        select(League).where(League.share_token == token.lower()).with_for_update()
    ).scalar_one_or_none()
    if league is None:
        raise NotFound("Invalid share token")
    membership, reactivated = _enroll(db, league, user_id, password=None, via_invite=True)
    return league, membership, reactivated


def leave_league(db: Session, league_id: int, user_id: int) -> bool:
    """Deactivate the caller's membership.

    Returns True when the league was archived because its owner left as the
    last active member.
    """
    league = lock_league(db, league_id)
    membership = get_membership(db, league_id, user_id)
    if membership is None:
        raise NotFound("Membership not found")

    archived = False
    role = MembershipRole(membership.role)
    if role is MembershipRole.OWNER:
        if count_active_members(db, league_id, exclude_user_id=user_id) > 0:
            raise InvalidState(
                "Cannot leave league as owner. Transfer ownership or delete the league first."
            )
        if league is not None:
            league.status = LeagueStatus.ARCHIVED.value
            archived = True
    elif role in (MembershipRole.ORGANIZER, MembershipRole.PLAYER):
        pass
    else:
        raise ValueError(f"unhandled membership role: {role}")

    membership.status = MembershipStatus.INACTIVE.value
    log_action(
        db,
        category="membership",
        action="leave",
        actor_user_id=user_id,
        league_id=league_id,
        details={"membership_id": membership.id, "league_archived": archived},
    )
    db.commit()
    logger.info(
        "league_leave league_id=%s user_id=%s archived=%s", league_id, user_id, archived
    )
    return archived


def get_membership_detail(
    db: Session, league_id: int, user_id: int
) -> Optional[Tuple[LeagueMembership, Player | None]]:
    membership = get_membership(db, league_id, user_id)
    if membership is None:
        return None
    player = db.get(Player, membership.player_id) if membership.player_id else None
    return membership, player


def list_members(
    db: Session,
    league_id: int,
    status: MembershipStatus | None = None,
) -> List[Tuple[LeagueMembership, User | None, Player | None]]:
    if db.get(League, league_id) is None:
        raise NotFound("League not found")
    query = (
        select(LeagueMembership, User, Player)
        .outerjoin(User, User.id == LeagueMembership.user_id)
        .outerjoin(Player, Player.id == LeagueMembership.player_id)
        .where(LeagueMembership.league_id == league_id)
        .order_by(LeagueMembership.joined_at, LeagueMembership.id)
    )
    if status is not None:
        query = query.where(LeagueMembership.status == status.value)
    return [tuple(row) for row in db.execute(query).all()]


def change_member_role(
    db: Session,
    league_id: int,
    actor_user_id: int,
    target_user_id: int,
    new_role: str,
) -> LeagueMembership:
    try:
        role = MembershipRole(new_role)
    except ValueError:
        raise BadRequest("Invalid role. Must be owner, organizer, or player") from None
    if role not in ASSIGNABLE_ROLES:
        raise BadRequest("Use ownership transfer to assign the owner role")

    require_league_role(db, league_id, actor_user_id, {MembershipRole.OWNER})
    if target_user_id == actor_user_id:
        raise BadRequest("League owner cannot change their own role. Transfer ownership first.")

    target = get_membership(db, league_id, target_user_id)
    if target is None:
        raise NotFound("Member not found")

    previous = target.role
    target.role = role.value
    log_action(
        db,
        category="membership",
        action="change_role",
        actor_user_id=actor_user_id,
        league_id=league_id,
        target_user_id=target_user_id,
        details={"from": previous, "to": role.value},
    )
    db.commit()
    db.refresh(target)
    return target


def transfer_ownership(
    db: Session,
    league_id: int,
    actor_user_id: int,
    new_owner_user_id: int,
) -> Tuple[LeagueMembership, LeagueMembership]:
    if lock_league(db, league_id) is None:
        raise NotFound("League not found")

    current = get_membership(db, league_id, actor_user_id)
    if (
        current is None
        or current.role != MembershipRole.OWNER
        or current.status != MembershipStatus.ACTIVE
    ):
        raise Forbidden("Only the league owner can transfer ownership")
    if new_owner_user_id == actor_user_id:
        raise BadRequest("You already own this league")

    new_owner = get_membership(db, league_id, new_owner_user_id)
    if new_owner is None:
        raise NotFound("New owner not found in this league")
    if new_owner.status != MembershipStatus.ACTIVE:
        raise BadRequest("New owner must be an active member of the league")

    current.role = MembershipRole.ORGANIZER.value
    new_owner.role = MembershipRole.OWNER.value
    log_action(
        db,
        category="membership",
        action="transfer_ownership",
        actor_user_id=actor_user_id,
        league_id=league_id,
        target_user_id=new_owner_user_id,
    )
    db.commit()
    db.refresh(current)
    db.refresh(new_owner)
    logger.info(
        "league_transfer_ownership league_id=%s from_user_id=%s to_user_id=%s",
        league_id,
        actor_user_id,
        new_owner_user_id,
    )
    return current, new_owner


def create_player(
    db: Session,
    league_id: int,
    user_id: int,
    *,
    name: str,
    faction: str | None = None,
    army_name: str | None = None,
) -> Tuple[LeagueMembership, Player]:
    membership = get_membership(db, league_id, user_id)
    if membership is None:
        raise NotFound("Membership not found")
    if membership.status != MembershipStatus.ACTIVE:
        raise InvalidState("Membership is not active")
    if membership.player_id is not None:
        raise Conflict("Player profile already exists for this league")

    clean_name = name.strip()
    if not clean_name:
        raise BadRequest("Missing required field: name")

    player = Player(
        league_id=league_id,
        user_id=user_id,
        name=clean_name,
        faction=(faction or "").strip() or None,
        army_name=(army_name or "").strip() or None,
    )
    db.add(player)
    db.flush()
    membership.player_id = player.id
    log_action(
        db,
        category="membership",
        action="create_player",
        actor_user_id=user_id,
        league_id=league_id,
        details={"player_id": player.id, "name": clean_name},
    )
    db.commit()
    db.refresh(membership)
    db.refresh(player)
    return membership, player


def update_membership(
    db: Session, membership_id: int, changes: Dict[str, Any]
) -> LeagueMembership:
    """Admin edit of a single membership row.

    The owner row only changes hands through ``transfer_ownership``, and a
    membership is only reactivated into a league that is open and has room.
    """
    if not changes:
        raise BadRequest("No fields to update")

    membership = db.get(LeagueMembership, membership_id)
    if membership is None:
        raise NotFound("Membership not found")
    league = lock_league(db, membership.league_id)
    if league is None:
        raise NotFound("League not found")

    role = MembershipRole(membership.role)
    status = MembershipStatus(membership.status)
    if "role" in changes:
        try:
            role = MembershipRole(changes["role"])
        except ValueError:
            raise BadRequest("Invalid role. Must be owner, organizer, or player") from None
    if "status" in changes:
        try:
            status = MembershipStatus(changes["status"])
        except ValueError:
            raise BadRequest("Invalid status. Must be active or inactive") from None

    was_owner = membership.role == MembershipRole.OWNER
    if was_owner and (role is not MembershipRole.OWNER or status is not MembershipStatus.ACTIVE):
        raise InvalidState("Use ownership transfer to change the league owner")
    if role is MembershipRole.OWNER and not was_owner:
        if status is not MembershipStatus.ACTIVE:
            raise InvalidState("League owner must be an active member")
        owners = db.execute(
            select(func.count())
            .select_from(LeagueMembership)
            .where(
                LeagueMembership.league_id == league.id,
                LeagueMembership.role == MembershipRole.OWNER.value,
            )
        ).scalar_one()
        if owners:
            raise Conflict("League already has an owner")
    if status is MembershipStatus.ACTIVE and membership.status != MembershipStatus.ACTIVE:
        _require_open(league)
        _require_capacity(db, league)

    if "player_id" in changes:
        player_id = changes["player_id"]
        if player_id is not None:
            player = db.get(Player, player_id)
            if player is None or player.league_id != league.id:
                raise BadRequest("Player does not belong to this league")
        membership.player_id = player_id

    membership.role = role.value
    membership.status = status.value
    log_action(
        db,
        category="admin",
        action="update_membership",
        league_id=league.id,
        target_user_id=membership.user_id,
        details={"membership_id": membership_id, "fields": sorted(changes)},
    )
    db.commit()
    db.refresh(membership)
    logger.info(
        "admin_update_membership membership_id=%s league_id=%s role=%s status=%s",
        membership_id,
        league.id,
        membership.role,
        membership.status,
    )
    return membership
