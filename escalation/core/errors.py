from __future__ import annotations


class LeagueError(Exception):
    """Base class for failures that are already classified.

    Subclasses name the kind of failure; ``escalation.main`` is the only place
    that turns a kind into an HTTP status code.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(LeagueError):
    pass


class NotFound(LeagueError):
    pass


class Conflict(LeagueError):
    pass


class Unauthorized(LeagueError):
    pass


class Forbidden(LeagueError):
    pass


class InvalidState(LeagueError):
    pass


class RateLimited(LeagueError):
    pass


class InternalError(LeagueError):
    pass
