from __future__ import annotations

from playoff_pickem.core.config import get_settings
from .base import ScoreFeed
from .espn import ESPNScoreboardFeed
from .static import StaticScoreFeed


def get_feed() -> ScoreFeed:
    settings = get_settings()
    key = (settings.FEED_PROVIDER or "espn").lower()
    if key == "espn":
        return ESPNScoreboardFeed()
    if key == "static":
        return StaticScoreFeed()
    # Future: add mappings for other providers
    return ESPNScoreboardFeed()
