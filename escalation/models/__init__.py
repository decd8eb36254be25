from escalation.models.enums import LeagueStatus, MembershipRole, MembershipStatus
from escalation.models.tables import ActionLog, League, LeagueMembership, Player, User

__all__ = [
    "ActionLog",
    "League",
    "LeagueMembership",
    "LeagueStatus",
    "MembershipRole",
    "MembershipStatus",
    "Player",
    "User",
]
