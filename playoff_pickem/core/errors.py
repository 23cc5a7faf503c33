from __future__ import annotations

from typing import Any, Optional


class PickemError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        body = {"error": self.code, "detail": self.message}
        if self.context:
            body["context"] = self.context
        return body


class ValidationError(PickemError):
    """Bad team id, bad week number and similar caller mistakes. Never retried."""

    status_code = 422
    code = "validation_error"


class NotFoundError(PickemError):
    status_code = 404
    code = "not_found"


class GameLockedError(PickemError):
    """A write was attempted after a game locked.

    Expected and frequent; callers should show it as "picks are locked".
    """

    status_code = 409
    code = "picks_locked"

    def __init__(self, game_id: int, message: Optional[str] = None) -> None:
        super().__init__(message or "Picks are locked for this game", game_id=game_id)
        self.game_id = game_id


class FeedUnavailableError(PickemError):
    """The score feed timed out, answered non-2xx, or sent an unreadable body."""

    status_code = 503
    code = "feed_unavailable"


class HiddenUntilLockError(PickemError):
    """Other users' picks are only visible once a game locks."""

    status_code = 409
    code = "hidden_until_lock"
