from .base import GameRef, GameUpdate, ScoreFeed
from .factory import get_feed

__all__ = ["GameRef", "GameUpdate", "ScoreFeed", "get_feed"]
