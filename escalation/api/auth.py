from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from escalation.api.deps import get_current_user
from escalation.db.session import get_db
from escalation.models import LeagueMembership, MembershipStatus, User
from escalation.schemas.auth import MeOut, UserOut
from escalation.schemas.leagues import MembershipOut

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeOut)
def me(db: Session = Depends(get_db), user: User = Depends(get_current_user)) -> MeOut:
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    memberships = (
        db.execute(
            select(LeagueMembership)
            .where(
                LeagueMembership.user_id == user.id,
                LeagueMembership.status == MembershipStatus.ACTIVE.value,
            )
            .order_by(LeagueMembership.joined_at, LeagueMembership.id)
        )
        .scalars()
        .all()
    )
    return MeOut(
        user=UserOut.model_validate(user),
        memberships=[MembershipOut.model_validate(row) for row in memberships],
    )
