"""Persistent ordered index of event summaries."""
import json
import logging
import re
from typing import List, Optional

from catalog.event_cache import EVENTS_DIR
from catalog.models import EventIndex, EventIndexEntry, FullEvent
from storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

INDEX_PATH = 'index.json'
EVENT_FILE_PATTERN = re.compile(r'^\d+\.json$')


class IndexCorruptionError(Exception):
    """Raised when the index cannot be loaded or rebuilt."""


class IndexManager:
    """
    Owns the event index and the id counter.

    Every mutation rewrites index.json in the store. The snapshot is a
    derived artifact; load() rebuilds it from the event documents when
    it is missing.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self.index: Optional[EventIndex] = None

    @property
    def entries(self) -> List[EventIndexEntry]:
        return self.index.events

    @property
    def next_id(self) -> int:
        return self.index.next_id

    def load(self) -> EventIndex:
        """
        Load the index snapshot or rebuild it from stored events.

        Returns:
            The loaded EventIndex

        Raises:
            IndexCorruptionError: If the snapshot or an event document
                cannot be parsed
        """
        if self.store.exists(INDEX_PATH):
            try:
                self.index = EventIndex.from_dict(self.store.get_json(INDEX_PATH))
            except (ValueError, KeyError, TypeError) as e:
                raise IndexCorruptionError(f"Unreadable {INDEX_PATH}: {e}") from e
            logger.info(
                f"Loaded events index: {len(self.index.events)} events, "
                f"next id {self.index.next_id}"
            )
            return self.index

        self.index = self.rebuild()
        self.save()
        return self.index

    def rebuild(self) -> EventIndex:
        """
        Derive the index from every stored event document.

        Returns:
            Freshly built EventIndex
        """
        logger.info("Creating events index...")
        events = []
        max_id = 0

        for file_name in self.store.list_files(EVENTS_DIR):
            if not EVENT_FILE_PATTERN.match(file_name):
                continue
            path = f"{EVENTS_DIR}/{file_name}"
            try:
                event = FullEvent.from_dict(self.store.get_json(path))
            except (ValueError, TypeError, AttributeError) as e:
                raise IndexCorruptionError(f"Unreadable event {path}: {e}") from e
            max_id = max(max_id, event.id)
            events.append(event.summary())

        logger.info(f"Indexed {len(events)} events")
        return EventIndex(events=events, next_id=max_id + 1)

    def save(self) -> None:
        """Write the full snapshot to the store."""
        self.store.set_text(
            INDEX_PATH,
            json.dumps(self.index.to_dict(), indent=1),
            message='Update events index'
        )

    def contains(self, event_id: int) -> bool:
        return any(entry.id == event_id for entry in self.index.events)

    def upsert(self, entry: EventIndexEntry) -> None:
        """
        Replace the entry with the same id in place, or append it.

        Args:
            entry: Event summary (projected with summary())
        """
        summary = entry.summary()
        for position, existing in enumerate(self.index.events):
            if existing.id == summary.id:
                self.index.events[position] = summary
                break
        else:
            self.index.events.append(summary)
        self.save()

    def allocate_id(self) -> int:
        """Peek at the id a new event would receive."""
        return self.index.next_id

    def consume_id(self) -> int:
        """
        Mark the allocated id as used.

        Returns:
            The id that was consumed
        """
        event_id = self.index.next_id
        self.index.next_id += 1
        return event_id
