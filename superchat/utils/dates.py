"""Date formatting for the session history list."""

from datetime import datetime
from typing import Optional

DAY_MS = 24 * 60 * 60 * 1000


def format_session_date(timestamp_ms: int, now_ms: Optional[int] = None) -> str:
    """
    Short label for a session timestamp, in local time.

    ``HH:MM`` within the last 24 hours, the short weekday within the last
    7 days, ``Mon D`` otherwise.
    """
    moment = datetime.fromtimestamp(timestamp_ms / 1000)
    now = datetime.fromtimestamp(now_ms / 1000) if now_ms is not None else datetime.now()
    age_ms = (now - moment).total_seconds() * 1000

    if age_ms < DAY_MS:
        return moment.strftime("%H:%M")
    if age_ms < 7 * DAY_MS:
        return moment.strftime("%a")
    return f"{moment.strftime('%b')} {moment.day}"
