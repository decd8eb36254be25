from __future__ import annotations

import json
from typing import Any, Optional

from sqlalchemy.orm import Session

from escalation.models import ActionLog


def log_action(
    db: Session,
    *,
    category: str,
    action: str,
    actor_user_id: Optional[int] = None,
    league_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """Stage an audit row on ``db``.

    The row is committed together with the caller's own changes, so a failed
    operation leaves no trace in the log.
    """
    payload = json.dumps(details, ensure_ascii=False, default=str) if details else None
    db.add(
        ActionLog(
            category=category,
            action=action,
            actor_user_id=actor_user_id,
            league_id=league_id,
            target_user_id=target_user_id,
            details=payload,
        )
    )
