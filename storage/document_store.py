"""Document store interface for catalog persistence."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the backing store cannot be read or written."""


class DocumentNotFoundError(StorageError):
    """Raised when a requested document does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class DocumentStore(ABC):
    """
    Versioned document storage with commit attribution.

    Paths are relative to the store root, e.g. "centers/wroclaw.json".
    Subscribers registered with on_update() are called after every
    poke() with is_pull=True when the store changed from outside
    this process.
    """

    def __init__(self):
        self._listeners: List[Callable[[bool], None]] = []

    def on_update(self, callback: Callable[[bool], None]) -> None:
        """
        Subscribe to store refresh notifications.

        Args:
            callback: Called with is_pull after each refresh
        """
        self._listeners.append(callback)

    def _notify(self, is_pull: bool) -> None:
        for callback in list(self._listeners):
            callback(is_pull)

    def get_json(self, path: str) -> Any:
        """Read a document and parse it as JSON."""
        return json.loads(self.get_text(path))

    def set_json(
        self,
        path: str,
        value: Any,
        message: str,
        author: Optional[str] = None
    ) -> None:
        """
        Serialize value as indented JSON and commit it.

        Args:
            path: Document path relative to the store root
            value: JSON-serializable value
            message: Commit message
            author: User the change is attributed to
        """
        self.set_text(path, json.dumps(value, indent=1), message, author)

    @abstractmethod
    def get_text(self, path: str) -> str:
        """
        Read a document as text.

        Raises:
            DocumentNotFoundError: If the document does not exist
            StorageError: If the store cannot be read
        """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether a document exists."""

    @abstractmethod
    def list_files(self, directory: str) -> List[str]:
        """List base names of the documents directly under directory."""

    @abstractmethod
    def set_text(
        self,
        path: str,
        text: str,
        message: Optional[str] = None,
        author: Optional[str] = None
    ) -> None:
        """Write a document, optionally attributing the change."""

    @abstractmethod
    def poke(self) -> bool:
        """
        Refresh the local view of the store and notify subscribers.

        Returns:
            True if the store was changed from outside this process
        """

    @abstractmethod
    def list_versions(self, path: str) -> List[Dict[str, Any]]:
        """Return the change history of a document, newest first."""
