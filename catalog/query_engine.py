"""Event queries and single-event reads."""
import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Mapping, Optional

from catalog.augmenter import augment_event
from catalog.catalog_store import CatalogStore
from catalog.models import FullEvent, QueryResult

logger = logging.getLogger(__name__)

WILDCARD = '*'
FAR_FUTURE = '9999-99-99'
DEFAULT_LOOKBACK_DAYS = 3
MAX_COUNT = 100

LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _parse_int(value, default: int) -> int:
    """Leading integer of value, as in "12abc" -> 12; default when absent or zero."""
    if value is None:
        return default
    match = LEADING_INT_PATTERN.match(str(value))
    if not match:
        return default
    return int(match.group(1)) or default


class QueryEngine:
    """Filters, sorts and pages the event index."""

    def __init__(self, catalog: CatalogStore, today: Callable[[], date] = utc_today):
        """
        Args:
            catalog: Catalog state to query
            today: Clock used for the default start date
        """
        self.catalog = catalog
        self.today = today

    def query(self, params: Optional[Mapping[str, str]] = None) -> QueryResult:
        """
        Run an event query.

        Args:
            params: Optional start, stop, center, country, skip and count

        Returns:
            QueryResult with the pre-pagination total and augmented events
        """
        params = params or {}
        start = params.get('start') or (
            self.today() - timedelta(days=DEFAULT_LOOKBACK_DAYS)
        ).isoformat()
        stop = params.get('stop') or FAR_FUTURE
        center = params.get('center') or WILDCARD
        country = params.get('country') or WILDCARD

        events = [
            entry for entry in self.catalog.index.entries
            if (entry.end_date or entry.start_date) >= start
            and entry.start_date <= stop
            and (center == WILDCARD or entry.center == center)
        ]

        directory = self.catalog.centers
        for center_id in {entry.center for entry in events}:
            directory.get(center_id)

        if country != WILDCARD:
            events = [
                entry for entry in events
                if self._country_of(entry.center) == country
            ]

        events.sort(key=lambda entry: (entry.start_date, entry.id))
        total_count = len(events)

        skip = max(_parse_int(params.get('skip'), 0), 0)
        count = min(abs(_parse_int(params.get('count'), MAX_COUNT)), MAX_COUNT)
        page = events[skip:skip + count]

        logger.info(
            f"Query start={start} stop={stop} center={center} country={country} "
            f"matched {total_count}, returning {len(page)}"
        )
        return QueryResult(
            total_count=total_count,
            events=[augment_event(entry, directory) for entry in page]
        )

    def _country_of(self, center_id: str) -> Optional[str]:
        center = self.catalog.centers.peek(center_id)
        return center.country if center else None

    def get_event(self, event_id: int) -> Optional[FullEvent]:
        """
        Read a single event for display.

        The center's name and address fill in when the event stores no
        address of its own.

        Returns:
            Augmented FullEvent or None if the id is unknown
        """
        event = self.catalog.read_event_document(event_id)
        if event is None:
            return None

        center = self.catalog.centers.get(event.center)
        if center is not None and not event.address:
            event.address = center.address
            event.name = center.name
        return augment_event(event, self.catalog.centers)
