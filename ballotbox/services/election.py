import threading
from datetime import datetime

from flask import current_app

from ballotbox.errors import ConfigError, ElectionClosed, InvalidRequest


def parse_close_at(value):
    """Parse an ISO 8601 instant; naive values are taken as server local time."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest("isoDate doit être une date ISO 8601.")
    value = value.strip()
    if not value:
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidRequest(f"Date invalide: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


class ElectionState:
    """Process-wide election settings that admins may change at runtime."""

    def __init__(self, close_at=None):
        self._lock = threading.Lock()
        self._close_at = parse_close_at(close_at)

    @property
    def close_at(self):
        with self._lock:
            return self._close_at

    def set_close_at(self, value):
        parsed = parse_close_at(value)
        with self._lock:
            self._close_at = parsed
        return parsed

    def is_closed(self, now=None):
        close_at = self.close_at
        if close_at is None:
            return False
        now = now or datetime.now().astimezone()
        return now > close_at

    def ensure_open(self, now=None):
        if self.is_closed(now):
            raise ElectionClosed()

    def to_dict(self, now=None):
        close_at = self.close_at
        iso = close_at.isoformat() if close_at else None
        return {"closeAt": iso, "CLOSE_AT": iso, "closed": self.is_closed(now)}


def init_election_state(app):
    close_at = app.config.get("CLOSE_AT")
    try:
        app.extensions["election"] = ElectionState(close_at)
    except InvalidRequest as exc:
        raise ConfigError(f"CLOSE_AT is not an ISO 8601 date: {close_at!r}") from exc


def get_election_state():
    return current_app.extensions["election"]
