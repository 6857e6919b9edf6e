import logging
import re
from datetime import date

from app.schemas.pricing import CityEvent, EventImpact

logger = logging.getLogger(__name__)

# "Diwali (2025-10-20–2025-10-24)", separator inside the range is an en-dash
_EVENT_RE = re.compile(r"(.+?)\s*\((\d{4}-\d{2}-\d{2})–(\d{4}-\d{2}-\d{2})\)")

_IMPACT_KEYWORDS: list[tuple[EventImpact, tuple[str, ...]]] = [
    (EventImpact.very_high, ("kumbh", "diwali", "new year")),
    (EventImpact.high, ("wedding", "durga puja", "navratri")),
    (EventImpact.medium, ("festival", "jayanti", "puja")),
]


def classify_event_impact(name: str) -> EventImpact:
    """Guess how strongly an event drives hotel demand from its name."""
    lowered = name.lower()
    for impact, keywords in _IMPACT_KEYWORDS:
        if any(k in lowered for k in keywords):
            return impact
    return EventImpact.low


def parse_peak_months(raw: str | None) -> list[int]:
    """Parse "10,11,12" into [10, 11, 12], skipping anything that is not a month."""
    if not raw:
        return []

    months: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            month = int(part)
        except ValueError:
            logger.warning("Skipping non-numeric peak month %r", part)
            continue
        if not 1 <= month <= 12:
            logger.warning("Skipping out-of-range peak month %d", month)
            continue
        months.append(month)
    return months


def parse_events(raw: str | None) -> list[CityEvent]:
    """Parse the semicolon-separated event list of a city.

    Entries that don't look like ``Name (YYYY-MM-DD–YYYY-MM-DD)`` are logged
    and skipped; the remaining entries are still returned in input order.
    """
    if not raw:
        return []

    events: list[CityEvent] = []
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue

        match = _EVENT_RE.search(entry)
        if not match:
            logger.warning("Skipping malformed event entry %r", entry)
            continue

        name, start, end = match.groups()
        try:
            start_date = date.fromisoformat(start)
            end_date = date.fromisoformat(end)
        except ValueError:
            logger.warning("Skipping event with invalid dates %r", entry)
            continue

        name = name.strip()
        events.append(
            CityEvent(
                name=name,
                start=start_date,
                end=end_date,
                impact=classify_event_impact(name),
            )
        )
    return events
