"""Display fields derived from stored event records."""
import copy
import dataclasses
import logging
from datetime import date, datetime
from typing import Dict, Optional
from urllib.parse import quote

from catalog.models import EventIndexEntry, EventListEntry

logger = logging.getLogger(__name__)

WEEKDAY_ABBR = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')
WEEKDAY_NAMES = (
    'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday'
)
MONTH_ABBR = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec'
)
MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December'
)

MAPS_LINK_URL = 'https://maps.google.com/?q='


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD; None for empty or malformed input."""
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def week_day(day: date) -> str:
    return WEEKDAY_ABBR[day.weekday()]


def month_plus_day(day: date) -> str:
    return f"{MONTH_ABBR[day.month - 1]} {day.day}"


def full_date(day: date) -> str:
    """Render e.g. "Wednesday, May 1, 2024"."""
    return (
        f"{WEEKDAY_NAMES[day.weekday()]}, "
        f"{MONTH_NAMES[day.month - 1]} {day.day}, {day.year}"
    )


def augment_event(event: EventIndexEntry, directory) -> EventListEntry:
    """
    Return a copy of event with display fields filled in.

    Only cached centers are consulted, so augmentation never touches the
    store.

    Args:
        event: Index entry or full event
        directory: CenterDirectory supplying fullcity

    Returns:
        Augmented copy of the event
    """
    if isinstance(event, EventListEntry):
        result = copy.copy(event)
    else:
        result = EventListEntry(**dataclasses.asdict(event))

    center = directory.peek(result.center)
    if center and center.fullcity:
        result.fullcity = center.fullcity

    start = parse_date(event.start_date)
    if start is None:
        result.weekday_range = ''
        result.date_range = ''
        result.combined_range = ''
        return result

    result.weekday_range = week_day(start)
    result.date_range = month_plus_day(start)
    result.combined_range = full_date(start)

    end = parse_date(event.end_date)
    if end is not None:
        result.weekday_range += '-' + week_day(end)
        if (start.year, start.month) != (end.year, end.month):
            result.date_range += '-' + month_plus_day(end)
        else:
            result.date_range += f"-{end.day}"
        result.combined_range += ' - ' + full_date(end)
    return result


def clean_address(address: str) -> str:
    """Collapse a multi-line address onto one line."""
    lines = [line.strip() for line in (address or '').splitlines()]
    return ', '.join(line for line in lines if line)


def map_links(name: Optional[str], address: Optional[str], geocoder=None) -> Dict[str, str]:
    """
    Build a maps link and, when a geocoder is available, a static map image.

    Args:
        name: Venue name
        address: Possibly multi-line street address
        geocoder: MapsClient or None

    Returns:
        Dictionary with 'mapurl' and, if resolvable, 'mapimg'
    """
    query = f"{name or ''}, {clean_address(address or '')}"
    links = {'mapurl': MAPS_LINK_URL + quote(query)}

    if geocoder is not None:
        try:
            links['mapimg'] = geocoder.static_map_url(query)
        except Exception as e:
            logger.warning(f"Failed to build map image for '{query}': {e}")
    return links
