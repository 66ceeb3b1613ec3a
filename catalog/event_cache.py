"""Cache of serialized event documents."""
import logging
from typing import Dict

from storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

EVENTS_DIR = 'current'


def event_file_name(event_id: int) -> str:
    """Zero-padded six digit file name, e.g. 000042.json."""
    return f"{event_id:06d}.json"


def event_path(event_id: int) -> str:
    return f"{EVENTS_DIR}/{event_file_name(event_id)}"


class EventCache:
    """
    Raw JSON text of event documents keyed by id.

    Text rather than parsed objects is kept so every reader gets a fresh
    copy to mutate.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._documents: Dict[int, str] = {}

    def get(self, event_id: int) -> str:
        """
        Return the document text, reading through to the store on a miss.

        Raises:
            DocumentNotFoundError: If the store has no such document
        """
        text = self._documents.get(event_id)
        if text is None:
            text = self.store.get_text(event_path(event_id))
            self._documents[event_id] = text
        return text

    def put(self, event_id: int, text: str) -> None:
        """Replace the cached text after a local write."""
        self._documents[event_id] = text

    def invalidate(self) -> None:
        logger.info(f"Invalidating {len(self._documents)} cached event documents")
        self._documents = {}

    def __len__(self) -> int:
        return len(self._documents)
