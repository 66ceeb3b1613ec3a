"""Catalog state: index, center directory and event cache."""
import json
import logging
from typing import Optional

from catalog.center_directory import CenterDirectory
from catalog.event_cache import EventCache
from catalog.index_manager import IndexManager
from catalog.models import FullEvent
from storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


class CatalogStore:
    """
    Owns the three in-memory views of the document store.

    The store's update channel is subscribed at construction; a pull
    empties the center directory before the next read, and the event
    cache too when invalidate_events_on_pull is set.
    """

    def __init__(
        self,
        store: DocumentStore,
        geocoder=None,
        invalidate_events_on_pull: bool = False
    ):
        """
        Args:
            store: Backing document store
            geocoder: Optional MapsClient for center fullcity
            invalidate_events_on_pull: Also drop cached event documents on pull
        """
        self.store = store
        self.geocoder = geocoder
        self.invalidate_events_on_pull = invalidate_events_on_pull

        self.index = IndexManager(store)
        self.centers = CenterDirectory(store, geocoder)
        self.events = EventCache(store)

        store.on_update(self.handle_store_update)

    def load(self) -> None:
        """Take a baseline of the store and load the index."""
        self.store.poke()
        self.index.load()

    def handle_store_update(self, is_pull: bool) -> None:
        if is_pull:
            self.invalidate()
            self.reload_index()

    def reload_index(self) -> None:
        """Re-read the index snapshot; the id counter never moves backwards."""
        if self.index.index is None:
            return
        next_id = self.index.next_id
        self.index.load()
        if self.index.next_id < next_id:
            logger.warning(
                f"Stored next id {self.index.next_id} is behind {next_id}, keeping {next_id}"
            )
            self.index.index.next_id = next_id

    def invalidate(self) -> None:
        """Drop cached state that may be stale after an external change."""
        logger.info("Store changed externally, invalidating caches")
        self.centers.invalidate()
        if self.invalidate_events_on_pull:
            self.events.invalidate()

    def read_event_document(self, event_id: int) -> Optional[FullEvent]:
        """
        Return the stored form of an indexed event.

        Args:
            event_id: Event id

        Returns:
            FullEvent as stored, or None if the id is not indexed
        """
        if not isinstance(event_id, int) or isinstance(event_id, bool):
            return None
        if not self.index.contains(event_id):
            return None
        return FullEvent.from_dict(json.loads(self.events.get(event_id)))
