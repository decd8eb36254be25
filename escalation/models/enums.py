from __future__ import annotations

from enum import Enum


class LeagueStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MembershipRole(str, Enum):
    OWNER = "owner"
    ORGANIZER = "organizer"
    PLAYER = "player"
