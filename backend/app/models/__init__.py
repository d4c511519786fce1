from app.models.match import Match, MatchPhase, MatchStatus
from app.models.team import CheckInStatus, Team
from app.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "CheckInStatus",
    "Match",
    "MatchPhase",
    "MatchStatus",
]
