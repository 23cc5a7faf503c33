from .user import User
from .team import Team
from .round import PlayoffRound
from .season import Season
from .game import Game, GameStatus
from .pick import Pick, PickOutcome
from .user_stat import UserStat
from .admin_action import AdminAction
from .sync_log import SyncLog

__all__ = [
    "User",
    "Team",
    "PlayoffRound",
    "Season",
    "Game",
    "GameStatus",
    "Pick",
    "PickOutcome",
    "UserStat",
    "AdminAction",
    "SyncLog",
]
