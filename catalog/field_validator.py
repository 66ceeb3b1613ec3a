"""Whitelisted validation and application of partial updates."""
import logging
import re
from typing import Any, Dict, Optional

from catalog.models import Center, FullEvent

logger = logging.getLogger(__name__)

MAX_SHORT_LENGTH = 200
MAX_LONG_LENGTH = 4000

DATE_PATTERN = re.compile(r'^2\d\d\d-\d\d-\d\d$')
TIME_PATTERN = re.compile(r'^\d\d:\d\d$')

# payload key -> FullEvent attribute, in application order
EVENT_FIELDS = (
    ('center', 'center'),
    ('startDate', 'start_date'),
    ('endDate', 'end_date'),
    ('title', 'title'),
    ('description', 'description'),
    ('startTime', 'start_time'),
    ('name', 'name'),
    ('address', 'address'),
)

# stored as '' rather than None, the index compares them as strings
TEXT_FIELDS = ('center', 'startDate', 'title', 'description', 'startTime')

# payload key -> length limit
CENTER_FIELDS = (
    ('program', MAX_LONG_LENGTH),
    ('about', MAX_LONG_LENGTH),
    ('name', MAX_SHORT_LENGTH),
    ('address', MAX_SHORT_LENGTH),
)


def valid_date(value: Optional[str]) -> bool:
    """Empty, absent or a YYYY-MM-DD date in the 2000s."""
    if value is None or value == '':
        return True
    return isinstance(value, str) and bool(DATE_PATTERN.match(value))


def valid_time(value: Optional[str]) -> bool:
    """Empty, absent or an HH:MM time."""
    if value is None or value == '':
        return True
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def _length(value: Any) -> int:
    return len(str(value)) if value else 0


def check_event_changes(curr: FullEvent, delta: Dict[str, Any]) -> str:
    """
    Check a partial event update without applying it.

    Args:
        curr: Event the delta would be applied to
        delta: Partial update payload keyed by stored field names

    Returns:
        Empty string if valid, otherwise a description of the first failure
    """
    if curr.center and delta.get('center') != curr.center:
        return 'cannot change event center'
    if not valid_date(delta.get('startDate')):
        return 'invalid start date'
    if not valid_date(delta.get('endDate')):
        return 'invalid end date'
    if not valid_time(delta.get('startTime')):
        return 'invalid start time'
    if _length(delta.get('title')) > MAX_SHORT_LENGTH:
        return 'title too long'
    if _length(delta.get('address')) > MAX_SHORT_LENGTH:
        return 'address too long'
    if _length(delta.get('name')) > MAX_SHORT_LENGTH:
        return 'name too long'
    if _length(delta.get('description')) > MAX_LONG_LENGTH:
        return 'description too long'
    return ''


def apply_event_changes(curr: FullEvent, delta: Dict[str, Any]) -> str:
    """
    Validate a partial event update and copy recognized fields into curr.

    Unrecognized keys are ignored. Nothing is copied unless every field
    passes.

    Returns:
        Empty string on success, otherwise the failure message
    """
    error = check_event_changes(curr, delta)
    if error:
        logger.info(f"Rejected changes to event {curr.id}: {error}")
        return error

    for key, attr in EVENT_FIELDS:
        if key in delta:
            value = delta[key]
            if value is None and key in TEXT_FIELDS:
                value = ''
            setattr(curr, attr, value)
    return ''


def check_center_changes(delta: Dict[str, Any]) -> str:
    """Check a partial center update; returns the first failure or ''."""
    for key, limit in CENTER_FIELDS:
        if key in delta and len(str(delta[key])) > limit:
            return f"{key} too long"
    return ''


def apply_center_changes(curr: Center, delta: Dict[str, Any]) -> str:
    """
    Validate a partial center update and copy recognized fields into curr.

    Values are stored as strings. Nothing is copied on failure.

    Returns:
        Empty string on success, otherwise the failure message
    """
    error = check_center_changes(delta)
    if error:
        logger.info(f"Rejected changes to center {curr.id}: {error}")
        return error

    for key, _ in CENTER_FIELDS:
        if key in delta:
            setattr(curr, key, str(delta[key]))
    return ''
