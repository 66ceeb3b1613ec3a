"""Validated writes of events and centers."""
import copy
import json
import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from catalog.catalog_store import CatalogStore
from catalog.center_directory import center_path
from catalog.event_cache import event_path
from catalog.field_validator import apply_center_changes, apply_event_changes
from catalog.models import Center, FullEvent, MutationResult, Outcome
from catalog.permissions import Authorizer
from catalog.query_engine import utc_today

logger = logging.getLogger(__name__)

DRAFT_LEAD_DAYS = 14
DRAFT_START_TIME = '20:00'
DRAFT_TITLE = 'New event'
DRAFT_DESCRIPTION = '<p>Details coming up soon!</p>'


class MutationPipeline:
    """
    Read-modify-validate-write for events and centers.

    Validation failures, missing records and permission problems are
    returned as MutationResult outcomes; storage failures propagate.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        authorizer: Authorizer,
        today: Callable[[], date] = utc_today
    ):
        self.catalog = catalog
        self.authorizer = authorizer
        self.today = today

    # TODO: take a per-id lock (or compare a version) before committing;
    # concurrent saves of one event currently race and the last one wins.
    def save_event(self, payload: Dict[str, Any], user: Optional[str]) -> MutationResult:
        """
        Create or update an event from a partial payload.

        A payload without an id, or with an id <= 0, creates a new event.

        Args:
            payload: Partial event keyed by stored field names
            user: User the change is attributed to

        Returns:
            MutationResult holding the stored FullEvent on success
        """
        # pick up ids and centers written by other processes
        self.catalog.store.poke()

        delta = dict(payload)
        center = self.catalog.centers.get(delta.get('center'))
        if center is None:
            return MutationResult(Outcome.NOT_FOUND, error='center not found')

        if not self.authorizer.can_write(user, center.users):
            logger.warning(f"User {user} may not post to center {center.id}")
            return MutationResult(Outcome.UNAUTHORIZED, error='cannot post here')

        event_id = delta.get('id')
        is_fresh = True
        if isinstance(event_id, int) and not isinstance(event_id, bool) and event_id > 0:
            event = self._load_for_update(event_id, center)
            if event is None:
                return MutationResult(Outcome.NOT_FOUND, error='event not found')
            is_fresh = False
        else:
            delta.pop('id', None)
            event = FullEvent(id=self.catalog.index.allocate_id())

        error = apply_event_changes(event, delta)
        if error:
            return MutationResult(Outcome.INVALID, error=error)

        if event.address == center.address:
            event.address = None
        if event.name == center.name:
            event.name = None
        if event.end_date == event.start_date:
            event.end_date = None

        self._commit_event(event, user, is_fresh)
        logger.info(
            f"{'Created' if is_fresh else 'Updated'} event {event.id} "
            f"in center {center.id}"
        )
        return MutationResult(Outcome.OK, record=event)

    def _load_for_update(self, event_id: int, center: Center) -> Optional[FullEvent]:
        event = self.catalog.read_event_document(event_id)
        if event is not None and not event.address:
            owner = self.catalog.centers.get(event.center) or center
            event.address = owner.address
            event.name = owner.name
        return event

    def _commit_event(self, event: FullEvent, user: Optional[str], is_fresh: bool) -> None:
        # nothing in memory changes until the document is committed
        document = event.to_document()
        self.catalog.store.set_json(
            event_path(event.id),
            document,
            f"Update {event.title}",
            user
        )
        if is_fresh:
            self.catalog.index.consume_id()
        self.catalog.index.upsert(event)
        self.catalog.events.put(event.id, json.dumps(document))

    def update_center(self, payload: Dict[str, Any], user: Optional[str]) -> MutationResult:
        """
        Apply a partial update to a center.

        The delta is validated against a copy of the cached center, then
        re-applied to the center as re-read after refreshing the store, so
        the commit builds on the latest stored state.

        Args:
            payload: Partial center with its id
            user: User the change is attributed to

        Returns:
            MutationResult holding the committed Center on success
        """
        center = self.catalog.centers.get(payload.get('id'))
        if center is None:
            return MutationResult(Outcome.NOT_FOUND, error='center not found')

        if not self.authorizer.can_write(user, center.users):
            logger.warning(f"User {user} may not edit center {center.id}")
            return MutationResult(Outcome.UNAUTHORIZED, error='cannot edit center')

        error = apply_center_changes(copy.deepcopy(center), payload)
        if error:
            return MutationResult(Outcome.INVALID, error=error)

        updated = self._update_center(
            center.id,
            lambda c: apply_center_changes(c, payload),
            f"Center {center.id} updated",
            user
        )
        if updated is None:
            return MutationResult(Outcome.NOT_FOUND, error='center not found')
        return MutationResult(Outcome.OK, record=updated)

    def _update_center(
        self,
        center_id: str,
        mutate: Callable[[Center], Any],
        message: str,
        user: Optional[str]
    ) -> Optional[Center]:
        self.catalog.store.poke()
        center = self.catalog.centers.get(center_id)
        if center is None:
            return None
        mutate(center)
        self.catalog.store.set_json(center_path(center.id), center.to_dict(), message, user)
        logger.info(message)
        return center

    def writable_centers(self, user: Optional[str]) -> List[Center]:
        """Centers the user may post events to, sorted by id."""
        if not user:
            return []
        is_admin = self.authorizer.is_admin(user)
        centers = [
            center for center in self.catalog.centers.get_all().values()
            if is_admin or user in center.users
        ]
        return sorted(centers, key=lambda center: center.id)

    def draft_event(
        self,
        user: Optional[str],
        center_id: Optional[str] = None,
        clone_id: Optional[int] = None
    ) -> MutationResult:
        """
        Prepare an unsaved event for an editor.

        Args:
            user: User who will post the event
            center_id: Center to post to; required if the user has several
            clone_id: Existing event to copy

        Returns:
            MutationResult holding a FullEvent with id 0, or the list of
            centers to choose from
        """
        centers = self.writable_centers(user)
        if not centers:
            return MutationResult(
                Outcome.UNAUTHORIZED,
                error='user account is not set up to post in any center'
            )

        if center_id:
            center = next((c for c in centers if c.id == center_id), None)
            if center is None:
                return MutationResult(Outcome.UNAUTHORIZED, error='cannot post here')
        elif len(centers) > 1:
            return MutationResult(Outcome.CHOOSE_CENTER, choices=centers)
        else:
            center = centers[0]

        if clone_id is not None:
            event = self.catalog.read_event_document(clone_id)
            if event is None:
                return MutationResult(Outcome.NOT_FOUND, error='cannot clone')
            if event.center != center.id:
                event.center = center.id
                event.address = center.address
                event.name = center.name
            event.id = 0
        else:
            event = FullEvent(
                id=0,
                start_date=(self.today() + timedelta(days=DRAFT_LEAD_DAYS)).isoformat(),
                end_date='',
                title=DRAFT_TITLE,
                center=center.id,
                start_time=DRAFT_START_TIME,
                description=DRAFT_DESCRIPTION,
                name=center.name,
                address=center.address
            )
        return MutationResult(Outcome.OK, record=event)
